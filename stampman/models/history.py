"""
StampHistoryEntry model - append-only stamp ledger.

Every earn and every redemption writes exactly one entry. The rate guard
reads these entries back to evaluate cooldown and daily limits.
"""

from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class StampEntryType(models.TextChoices):
    EARN = "earn", _("Acúmulo")
    USE = "use", _("Resgate")


class StampSource(models.TextChoices):
    """Where an earned stamp came from."""

    ORDER = "order", _("Pedido")
    CUSTOMER_SCAN = "customer_scan", _("Leitura do cliente")
    MERCHANT_MANUAL = "merchant_manual", _("Liberado pelo lojista")


class ImmutableEntryError(Exception):
    """Raised when code tries to rewrite or delete a ledger entry."""


class StampHistoryEntry(models.Model):
    """
    Immutable record of a stamp earn or redemption.

    Sum of earn amounts minus sum of use amounts for a balance equals
    the balance's current count.
    """

    balance = models.ForeignKey(
        "stampman.StampBalance",
        on_delete=models.PROTECT,
        related_name="history",
        verbose_name=_("cartão"),
    )
    order_id = models.CharField(
        _("pedido"),
        max_length=64,
        blank=True,
        help_text=_("Pedido que originou o lançamento"),
    )
    entry_type = models.CharField(
        _("tipo"),
        max_length=10,
        choices=StampEntryType.choices,
    )
    amount = models.PositiveIntegerField(_("quantidade"))
    source = models.CharField(
        _("origem"),
        max_length=20,
        choices=StampSource.choices,
        blank=True,
        help_text=_("Vazio para resgates"),
    )
    merchant_id = models.CharField(
        _("lojista"),
        max_length=64,
        blank=True,
        help_text=_("Lojista/funcionário que liberou o carimbo"),
    )
    created_at = models.DateTimeField(_("criado em"), default=timezone.now, db_index=True)

    class Meta:
        db_table = "stampman_history"
        verbose_name = _("lançamento de carimbo")
        verbose_name_plural = _("lançamentos de carimbo")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["balance", "entry_type", "created_at"],
                name="stampman_history_guard_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="stampman_history_amount_positive",
            ),
        ]

    def __str__(self):
        sign = "+" if self.entry_type == StampEntryType.EARN else "-"
        return f"{sign}{self.amount} ({self.get_entry_type_display()})"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ImmutableEntryError("Stamp history entries cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableEntryError("Stamp history entries cannot be deleted.")

    @property
    def signed_amount(self) -> int:
        if self.entry_type == StampEntryType.EARN:
            return self.amount
        return -self.amount
