"""Exceptions raised by the pricereg pipeline."""


class PriceRegError(Exception):
    """Base class for pricereg errors."""


class InsufficientDataError(PriceRegError, ValueError):
    """Fewer observations than model terms + 1 (model unidentifiable)."""

    def __init__(self, n_obs, n_terms):
        self.n_obs = n_obs
        self.n_terms = n_terms
        super().__init__(
            f"Only {n_obs} complete observation(s) for {n_terms} term(s); "
            f"OLS needs at least {n_terms + 1}."
        )


class DegenerateTransformError(PriceRegError, ValueError):
    """The Box-Cox search produced no finite log-likelihood."""


class SelectionDivergenceError(PriceRegError, RuntimeError):
    """Variable selection did not settle within the step cap."""

    def __init__(self, method, max_steps):
        self.method = method
        self.max_steps = max_steps
        super().__init__(
            f"{method} selection did not converge within {max_steps} steps"
        )
