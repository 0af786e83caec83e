"""Custom warning classes for the synthetic_claims package.

These warning classes allow users to programmatically filter, suppress,
or capture warnings using Python's standard ``warnings`` module.

Example:
    Silence horizon warnings when building unadjusted triangles::

        import warnings
        from synthetic_claims._warnings import DataQualityWarning

        warnings.filterwarnings("ignore", category=DataQualityWarning)
"""


class SyntheticClaimsWarning(UserWarning):
    """Base class for all synthetic-claims warnings."""


class DataQualityWarning(SyntheticClaimsWarning):
    """Runtime data-quality observations.

    Raised when output assembly encounters data that does not fit the
    requested layout, e.g. unadjusted payments that fall beyond the
    configured development horizon.
    """
