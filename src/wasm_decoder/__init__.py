"""Pure Python WebAssembly binary decoder.

Decodes WebAssembly modules into an immutable tree of sections, types and
instructions. No dependencies.
"""

from .config import DecoderConfig
from .decoder import Decoder, decode_module
from .errors import (
    DecodeError,
    ParseErrorKind,
    ValidationError,
    WasmError,
    describe_error,
)
from .stream import ConstrainedStream, InputStream, MemoryStream, ReconsumableStream
from .types import (
    Export,
    Expression,
    Function,
    FunctionType,
    Import,
    Instruction,
    Module,
    ValueType,
)

__version__ = "0.1.0"

__all__ = [
    # Main API
    "decode_module",
    "Decoder",
    "DecoderConfig",
    # Streams
    "InputStream",
    "MemoryStream",
    "ReconsumableStream",
    "ConstrainedStream",
    # Types
    "Module",
    "FunctionType",
    "Function",
    "Export",
    "Import",
    "Instruction",
    "Expression",
    "ValueType",
    # Errors
    "WasmError",
    "DecodeError",
    "ValidationError",
    "ParseErrorKind",
    "describe_error",
]
