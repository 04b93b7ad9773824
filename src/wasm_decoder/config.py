"""Decoder configuration."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DecoderConfig:
    """Safety limits applied while decoding untrusted modules."""

    # Largest element count accepted for any length-prefixed vector.
    max_vector_length: int = 1_000_000

    # Largest total number of locals accepted for a single function body.
    max_function_locals: int = 50_000

    def __post_init__(self) -> None:
        if self.max_vector_length < 0:
            raise ValueError("max_vector_length must not be negative")
        if self.max_function_locals < 0:
            raise ValueError("max_function_locals must not be negative")


DEFAULT_CONFIG = DecoderConfig()
