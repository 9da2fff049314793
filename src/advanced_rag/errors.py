"""Exception types raised by the pipeline and its collaborators."""


class ConfigurationError(RuntimeError):
    """Invalid or missing configuration detected at startup."""


class GenerationError(RuntimeError):
    """A text generation call failed after all retries."""
