"""Access to the ``LEDGER`` settings dictionary with defaults applied."""

from django.conf import settings

DEFAULTS = {
    # Editing a receipt skips the outstanding-balance check unless enabled.
    "ENFORCE_OUTSTANDING_ON_EDIT": False,
    "AUTO_ALLOCATE": True,
    "DATABASE_ALIAS": "default",
}


def ledger_settings() -> dict:
    """Return the effective ``LEDGER`` configuration."""

    configured = getattr(settings, "LEDGER", None) or {}
    unknown = set(configured) - set(DEFAULTS)
    if unknown:
        raise ValueError(f"Unknown LEDGER settings: {', '.join(sorted(unknown))}")
    return {**DEFAULTS, **configured}
