"""Exception hierarchy shared by the simulation core and its outer surfaces.

Four families mirror how a failure is handled by the caller:

* :class:`InputError` – the population itself is unusable; nothing is retained.
* :class:`StateError` – an operation was requested in the wrong session state.
* :class:`ComputationError` – a trial produced a non-finite or undefined value;
  the in-flight run is discarded and any previous summary stays untouched.
* :class:`CollaboratorError` – the external insight service failed; always
  recovered by the deterministic local summariser.
"""

from __future__ import annotations

from typing import Optional


class RippleError(Exception):
    """Base class for all simulator errors."""


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------


class InputError(RippleError):
    """The supplied population could not be used."""


class EmptyPopulation(InputError):
    def __init__(self, message: str = "Population is empty or has no data rows") -> None:
        super().__init__(message)


class UnreadablePopulationFile(InputError):
    """The population file is missing, corrupt or of an unsupported format."""


# ---------------------------------------------------------------------------
# State errors
# ---------------------------------------------------------------------------


class StateError(RippleError):
    """Operation requested while the session is not in a usable state."""


class NoPopulationLoaded(StateError):
    def __init__(self, message: str = "No population data loaded") -> None:
        super().__init__(message)


class InvalidTrialCount(StateError):
    def __init__(self, n_trials: int) -> None:
        super().__init__(f"Trial count must be >= 1, got {n_trials}")
        self.n_trials = n_trials


class StaleBaseline(StateError):
    """Baseline metrics are missing and could not be recomputed."""


class SimulationCancelled(StateError):
    """A run was cancelled between chunks; its trials were discarded."""


# ---------------------------------------------------------------------------
# Computation / collaborator errors
# ---------------------------------------------------------------------------


class ComputationError(RippleError):
    """Undefined arithmetic inside a run (NaN, division by zero, ...)."""

    def __init__(self, message: str, *, trial_index: Optional[int] = None) -> None:
        if trial_index is not None:
            message = f"Trial {trial_index + 1}: {message}"
        super().__init__(message)
        self.trial_index = trial_index


class CollaboratorError(RippleError):
    """The external insight service was unreachable or returned garbage."""


__all__ = [
    "RippleError",
    "InputError",
    "EmptyPopulation",
    "UnreadablePopulationFile",
    "StateError",
    "NoPopulationLoaded",
    "InvalidTrialCount",
    "StaleBaseline",
    "SimulationCancelled",
    "ComputationError",
    "CollaboratorError",
]
