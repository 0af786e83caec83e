"""Exception hierarchy for the claim simulation pipeline.

Every failure is raised at the point of detection; there is no retry or
partial-result recovery. Errors raised while processing a specific claim
carry the (1-based) occurrence period and claim index so the offending
record can be located.

Examples:
    Locating a failed claim::

        try:
            delays = claim_notification(n_vector, sizes, rng, config)
        except NumericalError as e:
            print(f"period {e.period}, claim {e.claim}: {e}")
"""

from typing import Optional


class SyntheticClaimsError(Exception):
    """Base class for all synthetic_claims errors.

    Attributes:
        period: Occurrence period (1-based) of the offending claim, if known.
        claim: Claim index (1-based, within its period), if known.
    """

    def __init__(
        self, message: str, period: Optional[int] = None, claim: Optional[int] = None
    ) -> None:
        self.message = message
        self.period = period
        self.claim = claim
        super().__init__(self._format())

    def _format(self) -> str:
        location = []
        if self.period is not None:
            location.append(f"period {self.period}")
        if self.claim is not None:
            location.append(f"claim {self.claim}")
        if location:
            return f"{self.message} ({', '.join(location)})"
        return self.message

    def locate(self, period: int, claim: Optional[int] = None) -> "SyntheticClaimsError":
        """Return a copy of this error tagged with a claim location.

        Args:
            period: Occurrence period (1-based).
            claim: Claim index within the period (1-based).

        Returns:
            New exception of the same type carrying the location.
        """
        return type(self)(self.message, period=period, claim=claim)


class InvalidParameterError(SyntheticClaimsError, ValueError):
    """Malformed or out-of-domain user input.

    Negative rates or exposures, mismatched vector lengths, a Beta mean
    outside (0, 1) and similar.
    """


class NumericalError(SyntheticClaimsError, RuntimeError):
    """Moment matching or root finding failed to converge."""


class RootFindingError(NumericalError):
    """Inverse-CDF sampling could not bracket or locate a root."""


class ShapeMismatchError(SyntheticClaimsError, ValueError):
    """Per-claim collections from different modules disagree in shape."""


class OutOfRangeError(SyntheticClaimsError, IndexError):
    """Inflation lookup beyond the supplied rate-vector horizon."""


class SimulationInvariantError(SyntheticClaimsError, AssertionError):
    """Internal invariant violated, e.g. a non-finite delay sample."""
