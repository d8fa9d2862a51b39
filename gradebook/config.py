"""
Configuration settings for the gradebook app.

These values can be overridden in Django settings by prefixing with GRADEBOOK_.
For example, to report final scores as plain weighted sums:
    GRADEBOOK_FINAL_SCORE_CONVENTION = 'simple'

All configuration values are lazily loaded to avoid Django setup issues.
"""


def _get_setting(name, default):
    """Get a gradebook setting from Django settings or use default."""
    from django.conf import settings
    return getattr(settings, f'GRADEBOOK_{name}', default)


_DEFAULTS = {
    # Term used when a subject has no start date for period 1
    'SEMESTER_START': '2025-09-01',

    # 'normalized' (0-10) or 'simple' (sum of weighted contributions)
    'FINAL_SCORE_CONVENTION': 'normalized',

    # Keep the weight of ungraded criteria in the normalized denominator
    'INCLUDE_EMPTY_CRITERIA_WEIGHT': True,

    # Export settings
    'EXCEL_HEADER_COLOR': '4F46E5',
}


class _ConfigProxy:
    """
    Lazy configuration proxy that loads settings only when accessed.
    This avoids Django setup issues during module import.
    """

    def __getattr__(self, name):
        if name in _DEFAULTS:
            return _get_setting(name, _DEFAULTS[name])
        raise AttributeError(f"Unknown config setting: {name}")


# Module-level proxy object for attribute access
_config = _ConfigProxy()


def __getattr__(name):
    """Enable module-level attribute access via the config proxy."""
    return getattr(_config, name)
