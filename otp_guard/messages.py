"""
User-Facing Messages
====================
Localized strings shown to end users. Technical details are logged with
an internal code and never returned to the caller.
"""

from typing import Dict

import structlog

from .errors import ErrorKind, classify_error, extract_status

logger = structlog.get_logger(__name__)

DEFAULT_LOCALE = "en"

CATALOGS: Dict[str, Dict[str, str]] = {
    "en": {
        "too_short": "Number too short",
        "disposable": "Virtual number detected ({provider})",
        "suspicious": "Suspicious number format",
        "high_risk": "High risk number",
        "format_fr": "Invalid format for a French number",
        "format_nanp": "Invalid format for a North American number",
        "format_gb": "Invalid format for a British number",
        "suggest_personal": "Use your personal number",
        "suggest_sequential": "Avoid sequential numbers",
        "risk_disposable": "This number looks temporary. Use your personal number to continue.",
        "risk_suspicious": "This number has unusual characteristics.",
        "risk_high": "This number cannot be used for verification.",
        "already_sent": "A code was already sent. It expires in {seconds}s.",
        "rate_limited": "Too many attempts. Please wait a few minutes.",
        "invalid_phone": "Invalid phone number. Check the format.",
        "unavailable": "Service temporarily unavailable. Try again in a moment.",
        "network": "Connection problem. Check your internet connection.",
        "blocked": "This number appears to be blocked. Contact support.",
        "temporarily_banned": "Too many failed attempts. Try again in {minutes} minutes.",
        "cancelled": "Sending was cancelled.",
        "invalid_channel": "Unsupported delivery channel.",
        "generic": "Could not send the SMS. Please try again.",
    },
    "fr": {
        "too_short": "Numéro trop court",
        "disposable": "Numéro virtuel détecté ({provider})",
        "suspicious": "Format de numéro suspect",
        "high_risk": "Numéro à risque élevé",
        "format_fr": "Format invalide pour un numéro français",
        "format_nanp": "Format invalide pour un numéro nord-américain",
        "format_gb": "Format invalide pour un numéro britannique",
        "suggest_personal": "Utilisez votre numéro personnel",
        "suggest_sequential": "Évitez les numéros séquentiels",
        "risk_disposable": "Ce numéro semble être temporaire. Utilisez votre numéro personnel pour continuer.",
        "risk_suspicious": "Ce numéro présente des caractéristiques inhabituelles.",
        "risk_high": "Ce numéro ne peut pas être utilisé pour la vérification.",
        "already_sent": "Un code a déjà été envoyé. Il expire dans {seconds}s.",
        "rate_limited": "Trop de tentatives. Veuillez attendre quelques minutes.",
        "invalid_phone": "Numéro de téléphone invalide. Vérifiez le format.",
        "unavailable": "Service temporairement indisponible. Réessayez dans quelques instants.",
        "network": "Problème de connexion. Vérifiez votre connexion internet.",
        "blocked": "Ce numéro semble être bloqué. Contactez le support.",
        "temporarily_banned": "Trop de tentatives échouées. Réessayez dans {minutes} minutes.",
        "cancelled": "L'envoi a été annulé.",
        "invalid_channel": "Canal d'envoi non pris en charge.",
        "generic": "Impossible d'envoyer le SMS. Veuillez réessayer.",
    },
}


def localize(code: str, locale: str = DEFAULT_LOCALE, **params) -> str:
    """Look up a message, falling back to English then to the code itself."""
    catalog = CATALOGS.get(locale) or CATALOGS[DEFAULT_LOCALE]
    template = catalog.get(code) or CATALOGS[DEFAULT_LOCALE].get(code, code)
    try:
        return template.format(**params)
    except (KeyError, IndexError):
        return template


def error_message_code(error: BaseException) -> str:
    """Pick the message code for a failure, first match wins."""
    message = str(error).lower()
    status = extract_status(error)
    kind = classify_error(error)

    if kind == ErrorKind.CANCELLED:
        return "cancelled"
    if status == 429 or "rate limit" in message:
        return "rate_limited"
    if "invalid phone" in message or kind == ErrorKind.VALIDATION:
        return "invalid_phone"
    if "quota" in message or (status is not None and 500 <= status < 600):
        return "unavailable"
    if kind == ErrorKind.TRANSIENT_NETWORK:
        return "network"
    if "blocked" in message or "spam" in message:
        return "blocked"
    return "generic"


def user_error_message(error: BaseException, locale: str = DEFAULT_LOCALE) -> str:
    """
    Map any exception to a short localized message.

    The technical detail is logged with an internal code; the caller only
    ever sees the friendly text.
    """
    code = error_message_code(error)
    logger.warning(
        "otp_user_error",
        internal_code=code.upper(),
        error_type=type(error).__name__,
        error=str(error),
    )
    return localize(code, locale)
