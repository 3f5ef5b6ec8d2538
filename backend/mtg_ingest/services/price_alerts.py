"""
Price change alerting.

A new CardPrice row is compared with the row that preceded it, one
treatment at a time. Changes at or beyond the configured threshold become
PriceAlert rows.
"""
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from mtg_ingest.core.constants import AlertDirection, Treatment
from mtg_ingest.models import CardPrice, PriceAlert

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PriceAlertCandidate:
    card_id: str
    treatment: Treatment
    old_price_cents: int
    new_price_cents: int
    percentage_change: float
    direction: AlertDirection

    def to_model(self) -> PriceAlert:
        return PriceAlert(
            card_id=self.card_id,
            treatment=self.treatment.value,
            old_price_cents=self.old_price_cents,
            new_price_cents=self.new_price_cents,
            percentage_change=self.percentage_change,
            direction=self.direction.value,
            dismissed=False,
        )


def percentage_change(old_price_cents: int, new_price_cents: int) -> float:
    return round((new_price_cents - old_price_cents) / old_price_cents * 100, 2)


class AlertEngine:
    """
    Threshold rule for price alerts.

    Args:
        threshold_pct: Minimum increase, in percent, that raises an alert.
        decrease_threshold_pct: Minimum decrease magnitude. Defaults to
            `threshold_pct`.
    """

    def __init__(self, threshold_pct: float = 20.0, decrease_threshold_pct: Optional[float] = None):
        if threshold_pct <= 0:
            raise ValueError("threshold_pct must be greater than zero")
        if decrease_threshold_pct is not None and decrease_threshold_pct <= 0:
            raise ValueError("decrease_threshold_pct must be greater than zero")
        self.threshold_pct = threshold_pct
        self.decrease_threshold_pct = (
            threshold_pct if decrease_threshold_pct is None else decrease_threshold_pct
        )

    def maybe_alert(
        self,
        card_id: str,
        treatment: Treatment | str,
        old_price_cents: Optional[int],
        new_price_cents: Optional[int],
    ) -> Optional[PriceAlertCandidate]:
        """Return an alert candidate, or None when there is nothing to report."""
        if not old_price_cents or new_price_cents is None:
            # First observation, unknown price or a zero base
            return None

        pct = percentage_change(old_price_cents, new_price_cents)
        if pct >= self.threshold_pct:
            direction = AlertDirection.INCREASE
        elif -pct >= self.decrease_threshold_pct:
            direction = AlertDirection.DECREASE
        else:
            return None

        return PriceAlertCandidate(
            card_id=card_id,
            treatment=Treatment(treatment),
            old_price_cents=old_price_cents,
            new_price_cents=new_price_cents,
            percentage_change=pct,
            direction=direction,
        )

    def evaluate(
        self,
        db: AsyncSession,
        card_id: str,
        previous: Optional[CardPrice],
        current: CardPrice,
    ) -> list[PriceAlert]:
        """
        Compare `current` with `previous` for every treatment.

        Qualifying alerts are added to `db`; the caller owns the commit.
        """
        if previous is None:
            return []

        alerts = []
        for treatment in Treatment:
            candidate = self.maybe_alert(
                card_id,
                treatment,
                previous.price_for(treatment),
                current.price_for(treatment),
            )
            if candidate is None:
                continue
            alert = candidate.to_model()
            db.add(alert)
            alerts.append(alert)
            logger.info(
                "Price alert created",
                card_id=card_id,
                treatment=treatment.value,
                direction=candidate.direction.value,
                percentage_change=candidate.percentage_change,
                old_price_cents=candidate.old_price_cents,
                new_price_cents=candidate.new_price_cents,
            )
        return alerts
