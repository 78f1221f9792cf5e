"""Shared exception types for the calculator."""


class MissingArchitectureField(ValueError):
    """Raised when a calculation needs an architecture field the model lacks.

    Carries the *field* name (e.g. "head_dimension") and the *stage* that
    needed it (e.g. "KV cache") so callers can tell the user what to supply.
    """

    def __init__(self, field: str, stage: str) -> None:
        self.field = field
        self.stage = stage
        super().__init__(
            f"Missing architecture field '{field}' required for {stage} calculation"
        )


class EvaluationError(Exception):
    """Raised when a performance evaluation cannot be completed.

    Wraps the underlying error as *cause*; no partial result is produced.
    """

    def __init__(
        self,
        operation: str,
        accelerator: str,
        model: str | None,
        cause: Exception,
    ) -> None:
        self.operation = operation
        self.accelerator = accelerator
        self.model = model
        self.cause = cause
        super().__init__(
            f"{operation} failed for model {model or '<unnamed>'} "
            f"on {accelerator}: {cause}"
        )


class CatalogError(ValueError):
    """Raised when a catalog file cannot be parsed into valid entries."""

    def __init__(self, path: str, details: str) -> None:
        self.path = path
        self.details = details
        super().__init__(f"Invalid catalog {path}: {details}")


class ModelResolutionError(ValueError):
    """Raised when a model config cannot be turned into a model spec."""

    def __init__(self, hf_id: str, details: str) -> None:
        self.hf_id = hf_id
        self.details = details
        super().__init__(f"Cannot resolve model {hf_id}: {details}")


class FormatBreakingChange(Exception):
    """Raised when an upstream data source has changed its format.

    Carries *source* (e.g. "gpuhunt") and a human-readable *details* string
    explaining what broke.
    """

    def __init__(self, source: str, details: str) -> None:
        self.source = source
        self.details = details
        super().__init__(f"Breaking format change in {source}: {details}")
