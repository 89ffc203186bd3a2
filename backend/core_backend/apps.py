from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class CoreBackendConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core_backend"

    def ready(self):
        """
        Validate order engine configuration at startup so a malformed tier
        table fails loudly instead of at the first checkout.
        """
        from core_backend.config import app_settings

        tiers = app_settings.loyalty_discount_tiers
        logger.debug(
            f"Order engine configured: currency={app_settings.currency}, "
            f"tax_rate={app_settings.tax_rate}, delivery_fee={app_settings.delivery_fee}, "
            f"{len(app_settings.coupon_codes)} coupon(s), {len(tiers)} loyalty tier(s)"
        )
