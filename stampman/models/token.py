"""
RedemptionToken model - merchant "allow stamping" sessions.

A token is a short code a merchant opens for 30 seconds. The first
customer to claim it gets one stamp; nobody else can claim it.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class RedemptionToken(models.Model):
    """
    Time-boxed, single-use stamp authorization for a café.

    Active iff used_by is NULL and now < expires_at.
    """

    cafe_id = models.CharField(_("café"), max_length=64)
    code = models.CharField(
        _("código"),
        max_length=12,
        help_text=_("Sem caracteres ambíguos (0/O/1/I)"),
    )
    issued_by = models.CharField(_("emitido por"), max_length=64)
    issued_at = models.DateTimeField(_("emitido em"))
    expires_at = models.DateTimeField(_("expira em"))

    used_by = models.CharField(_("usado por"), max_length=64, null=True, blank=True)
    used_at = models.DateTimeField(_("usado em"), null=True, blank=True)

    class Meta:
        db_table = "stampman_token"
        verbose_name = _("token de carimbo")
        verbose_name_plural = _("tokens de carimbo")
        ordering = ["-issued_at", "-id"]
        indexes = [
            models.Index(fields=["cafe_id", "expires_at"], name="stampman_token_active_idx"),
            models.Index(fields=["cafe_id", "code"], name="stampman_token_code_idx"),
        ]

    def __str__(self):
        return f"{self.cafe_id}:{self.code}"

    @property
    def is_used(self) -> bool:
        return self.used_by is not None

    def is_active_at(self, now) -> bool:
        return self.used_by is None and now < self.expires_at
