from django.conf import settings
from django.core.checks import Error, Tags, Warning, register


@register(Tags.security, deploy=True)
def payment_configuration_check(app_configs, **kwargs):
    config = getattr(settings, "BOOKINGS", {})
    gateway_options = config.get("PAYMENT_GATEWAY", {}).get("OPTIONS", {})
    missing = []
    if not config.get("WEBHOOK_SECRET"):
        missing.append("PAYMONGO_WEBHOOK_SECRET")
    if "secret_key" in gateway_options and not gateway_options["secret_key"]:
        missing.append("PAYMONGO_TEST_SECRET_KEY / PAYMONGO_SECRET_KEY_LIVE")
    if not missing:
        return []

    message = "Missing payment configuration: " + ", ".join(missing)
    if settings.DEBUG:
        return [Warning(message, hint="Set them in the environment before deploying.", id="bookings.W001")]
    return [Error(message, hint="The server cannot take payments without them.", id="bookings.E001")]
