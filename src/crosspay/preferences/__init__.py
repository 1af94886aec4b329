"""Settlement preference store."""

from crosspay.preferences.service import PreferenceService

__all__ = ["PreferenceService"]
