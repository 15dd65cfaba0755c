"""StampBalance model - one stamp card per (customer, café)."""

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _

from stampman.protocols.ledger import BalanceInfo


class StampBalance(models.Model):
    """
    Stamp balance of a customer at a café.

    Created lazily on the first earn and never deleted.

    Invariant (enforced by check constraints):
        count == total_earned - total_used, count >= 0

    customer_id and cafe_id are opaque references owned by the identity
    provider and the café catalog respectively.
    """

    customer_id = models.CharField(_("cliente"), max_length=64, db_index=True)
    cafe_id = models.CharField(_("café"), max_length=64, db_index=True)

    count = models.PositiveIntegerField(
        _("carimbos"),
        default=0,
        help_text=_("Carimbos disponíveis para resgate"),
    )
    total_earned = models.PositiveIntegerField(
        _("total acumulado"),
        default=0,
        help_text=_("Total de carimbos já acumulados (nunca decresce)"),
    )
    total_used = models.PositiveIntegerField(
        _("total resgatado"),
        default=0,
        help_text=_("Total de carimbos já resgatados (nunca decresce)"),
    )

    created_at = models.DateTimeField(_("criado em"), auto_now_add=True)
    updated_at = models.DateTimeField(_("atualizado em"), auto_now=True)

    class Meta:
        db_table = "stampman_balance"
        verbose_name = _("cartão de carimbos")
        verbose_name_plural = _("cartões de carimbos")
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["customer_id", "cafe_id"],
                name="stampman_unique_balance",
            ),
            models.CheckConstraint(
                condition=Q(count__gte=0),
                name="stampman_balance_count_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(count=F("total_earned") - F("total_used")),
                name="stampman_balance_count_matches_totals",
            ),
        ]

    def __str__(self):
        return f"{self.customer_id}@{self.cafe_id}: {self.count} carimbos"

    def rewards_available(self, stamp_goal: int) -> int:
        """Rewards that can be redeemed one at a time."""
        if stamp_goal <= 0:
            return 0
        return self.count // stamp_goal

    def stamps_to_next_reward(self, stamp_goal: int) -> int:
        if stamp_goal <= 0:
            return 0
        return stamp_goal - (self.count % stamp_goal)

    def as_info(self, stamp_goal: int) -> BalanceInfo:
        """Read-only snapshot for external readers (wallet passes, UI)."""
        return BalanceInfo(
            customer_id=self.customer_id,
            cafe_id=self.cafe_id,
            count=self.count,
            goal=stamp_goal,
            total_earned=self.total_earned,
            total_used=self.total_used,
            rewards_available=self.rewards_available(stamp_goal),
            stamps_to_next_reward=self.stamps_to_next_reward(stamp_goal),
        )
