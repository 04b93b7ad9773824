"""WebAssembly module structure.

Everything here is an immutable value: the decoder builds the tree bottom-up
and nothing is changed after construction.
"""

import struct
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, TypeVar, Union

from . import opcodes
from .errors import ValidationError


@dataclass(frozen=True, order=True)
class _Index:
    value: int

    def __int__(self) -> int:
        return self.value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value})"


# Each index family is its own dataclass, so indices from different
# families never compare equal and cannot be ordered against each other.


@dataclass(frozen=True, order=True, repr=False)
class TypeIndex(_Index):
    """Index into the module's function types."""


@dataclass(frozen=True, order=True, repr=False)
class FunctionIndex(_Index):
    """Index into the function index space (imports first)."""


@dataclass(frozen=True, order=True, repr=False)
class TableIndex(_Index):
    """Index into the table index space."""


@dataclass(frozen=True, order=True, repr=False)
class MemoryIndex(_Index):
    """Index into the memory index space."""


@dataclass(frozen=True, order=True, repr=False)
class LocalIndex(_Index):
    """Index of a parameter or local of the current function."""


@dataclass(frozen=True, order=True, repr=False)
class GlobalIndex(_Index):
    """Index into the global index space."""


@dataclass(frozen=True, order=True, repr=False)
class LabelIndex(_Index):
    """Relative depth of an enclosing structured block."""


@dataclass(frozen=True, order=True, repr=False)
class DataIndex(_Index):
    """Index of a data segment."""


@dataclass(frozen=True, order=True, repr=False)
class ElementIndex(_Index):
    """Index of an element segment."""


class ValueType(Enum):
    """WebAssembly value type."""

    I32 = "i32"
    I64 = "i64"
    F32 = "f32"
    F64 = "f64"
    FUNCREF = "funcref"
    EXTERNREF = "externref"

    @property
    def is_reference(self) -> bool:
        return self in (ValueType.FUNCREF, ValueType.EXTERNREF)

    @property
    def is_numeric(self) -> bool:
        return not self.is_reference

    def __str__(self) -> str:
        return self.value


# Binary encoding of value types
VALTYPE_ENCODING = {
    0x7F: ValueType.I32,
    0x7E: ValueType.I64,
    0x7D: ValueType.F32,
    0x7C: ValueType.F64,
    0x70: ValueType.FUNCREF,
    0x6F: ValueType.EXTERNREF,
}


@dataclass(frozen=True)
class ResultType:
    """Ordered list of value types."""

    types: tuple[ValueType, ...]


@dataclass(frozen=True)
class FunctionType:
    """WebAssembly function type (signature)."""

    parameters: tuple[ValueType, ...]
    results: tuple[ValueType, ...]

    def __repr__(self) -> str:
        params = ", ".join(map(str, self.parameters))
        results = ", ".join(map(str, self.results))
        return f"({params}) -> ({results})"


@dataclass(frozen=True)
class Limits:
    """Memory or table limits. ``max`` is None when unbounded."""

    min: int
    max: int | None = None


@dataclass(frozen=True)
class MemoryType:
    """Memory type with limits."""

    limits: Limits


@dataclass(frozen=True)
class TableType:
    """Table type with element type and limits."""

    element_type: ValueType
    limits: Limits

    def __post_init__(self) -> None:
        if not self.element_type.is_reference:
            raise ValueError(f"table element type must be a reference, not {self.element_type}")


@dataclass(frozen=True)
class GlobalType:
    """Global type with value type and mutability."""

    type: ValueType
    mutable: bool


@dataclass(frozen=True)
class EmptyBlockType:
    """Block producing no values."""


@dataclass(frozen=True)
class ValueBlockType:
    """Block producing a single value of ``type``."""

    type: ValueType


@dataclass(frozen=True)
class IndexBlockType:
    """Block whose signature is the function type at ``index``."""

    index: TypeIndex


BlockType = Union[EmptyBlockType, ValueBlockType, IndexBlockType]


@dataclass(frozen=True)
class BlockArgs:
    """Operand of block and loop."""

    block_type: BlockType
    instructions: tuple["Instruction", ...]


@dataclass(frozen=True)
class IfArgs:
    """Operand of if; ``else_instructions`` is empty without an else arm."""

    block_type: BlockType
    then_instructions: tuple["Instruction", ...]
    else_instructions: tuple["Instruction", ...]


@dataclass(frozen=True)
class IndirectCallArgs:
    type: TypeIndex
    table: TableIndex


@dataclass(frozen=True)
class MemoryArgument:
    align: int
    offset: int


@dataclass(frozen=True)
class TableBranchArgs:
    labels: tuple[LabelIndex, ...]
    default: LabelIndex


@dataclass(frozen=True)
class TableElementArgs:
    """Operand of table.init."""

    element: ElementIndex
    table: TableIndex


@dataclass(frozen=True)
class TableTableArgs:
    """Operand of table.copy (destination, then source)."""

    lhs: TableIndex
    rhs: TableIndex


@dataclass(frozen=True)
class F32Immediate:
    """Operand of f32.const, kept as its IEEE 754 bit pattern.

    Widening to a Python float may quiet a signalling NaN, so ``value`` is a
    convenience view and ``bits`` is what the binary held.
    """

    bits: int

    @property
    def value(self) -> float:
        return struct.unpack("<f", struct.pack("<I", self.bits))[0]

    def __repr__(self) -> str:
        return f"F32Immediate({self.value!r}, bits=0x{self.bits:08x})"


InstructionArguments = Union[
    BlockArgs,
    IfArgs,
    F32Immediate,
    DataIndex,
    ElementIndex,
    FunctionIndex,
    GlobalIndex,
    IndirectCallArgs,
    LabelIndex,
    LocalIndex,
    MemoryArgument,
    TableBranchArgs,
    TableElementArgs,
    TableIndex,
    TableTableArgs,
    ValueType,
    tuple[ValueType, ...],
    float,
    int,
    None,
]


@dataclass(frozen=True)
class Instruction:
    """A WebAssembly instruction.

    ``opcode`` is the byte opcode, or ``0xFC00 | sub_opcode`` for
    0xFC-prefixed instructions. Which ``arguments`` variant is present is
    fixed by the opcode.
    """

    opcode: int
    arguments: InstructionArguments = None

    @property
    def name(self) -> str:
        return opcodes.OPCODE_NAMES[self.opcode]

    def __repr__(self) -> str:
        if self.arguments is not None:
            return f"{self.name} {self.arguments!r}"
        return self.name


@dataclass(frozen=True)
class Expression:
    """Instruction sequence; the terminating end is not kept."""

    instructions: tuple[Instruction, ...]


@dataclass(frozen=True)
class Locals:
    """A run of ``count`` locals sharing one type."""

    count: int
    type: ValueType


@dataclass(frozen=True)
class Func:
    """A function body: local declarations and code."""

    locals: tuple[Locals, ...]
    body: Expression

    def local_types(self) -> tuple[ValueType, ...]:
        """Expand the local runs into one entry per local."""
        types: list[ValueType] = []
        for run in self.locals:
            types.extend([run.type] * run.count)
        return tuple(types)


@dataclass(frozen=True)
class CustomSection:
    section_id: ClassVar[int] = 0

    name: str
    contents: bytes


@dataclass(frozen=True)
class TypeSection:
    section_id: ClassVar[int] = 1

    types: tuple[FunctionType, ...]


ImportDescription = Union[TypeIndex, TableType, MemoryType, GlobalType]


@dataclass(frozen=True)
class Import:
    """An import entry."""

    module: str
    name: str
    description: ImportDescription


@dataclass(frozen=True)
class ImportSection:
    section_id: ClassVar[int] = 2

    imports: tuple[Import, ...]


@dataclass(frozen=True)
class FunctionSection:
    """Type index of each function defined in the module."""

    section_id: ClassVar[int] = 3

    types: tuple[TypeIndex, ...]


@dataclass(frozen=True)
class Table:
    type: TableType


@dataclass(frozen=True)
class TableSection:
    section_id: ClassVar[int] = 4

    tables: tuple[Table, ...]


@dataclass(frozen=True)
class Memory:
    type: MemoryType


@dataclass(frozen=True)
class MemorySection:
    section_id: ClassVar[int] = 5

    memories: tuple[Memory, ...]


@dataclass(frozen=True)
class Global:
    """Global variable declaration."""

    type: GlobalType
    expression: Expression


@dataclass(frozen=True)
class GlobalSection:
    section_id: ClassVar[int] = 6

    entries: tuple[Global, ...]


ExportDescription = Union[FunctionIndex, TableIndex, MemoryIndex, GlobalIndex]


@dataclass(frozen=True)
class Export:
    """An export entry."""

    name: str
    description: ExportDescription


@dataclass(frozen=True)
class ExportSection:
    section_id: ClassVar[int] = 7

    entries: tuple[Export, ...]


@dataclass(frozen=True)
class StartFunction:
    index: FunctionIndex


@dataclass(frozen=True)
class StartSection:
    section_id: ClassVar[int] = 8

    function: StartFunction


# Segment initializers are either plain function indices or constant
# expressions, depending on the segment's flags.
ElementInit = Union[FunctionIndex, Expression]


@dataclass(frozen=True)
class Element:
    """Active element segment: copied into ``table`` at ``offset``."""

    table: TableIndex
    offset: Expression
    init: tuple[ElementInit, ...]
    type: ValueType = ValueType.FUNCREF


@dataclass(frozen=True)
class PassiveElement:
    """Element segment only used through table.init."""

    type: ValueType
    init: tuple[ElementInit, ...]


@dataclass(frozen=True)
class DeclarativeElement:
    """Element segment that only forward-declares references (ref.func)."""

    type: ValueType
    init: tuple[ElementInit, ...]


ElementSegment = Union[Element, PassiveElement, DeclarativeElement]


@dataclass(frozen=True)
class ElementSection:
    section_id: ClassVar[int] = 9

    entries: tuple[ElementSegment, ...]


@dataclass(frozen=True)
class Code:
    """A function body together with its declared byte size."""

    size: int
    func: Func


@dataclass(frozen=True)
class CodeSection:
    section_id: ClassVar[int] = 10

    functions: tuple[Code, ...]


@dataclass(frozen=True)
class PassiveData:
    init: bytes


@dataclass(frozen=True)
class ActiveData:
    init: bytes
    index: MemoryIndex
    offset: Expression


@dataclass(frozen=True)
class Data:
    """Data segment for memory initialization."""

    value: PassiveData | ActiveData


@dataclass(frozen=True)
class DataSection:
    section_id: ClassVar[int] = 11

    data: tuple[Data, ...]


@dataclass(frozen=True)
class DataCountSection:
    section_id: ClassVar[int] = 12

    count: int | None


Section = Union[
    CustomSection,
    TypeSection,
    ImportSection,
    FunctionSection,
    TableSection,
    MemorySection,
    GlobalSection,
    ExportSection,
    StartSection,
    ElementSection,
    CodeSection,
    DataSection,
    DataCountSection,
]

S = TypeVar("S", bound=Section)


@dataclass(frozen=True)
class Function:
    """A defined function: its signature index, expanded locals and body."""

    type: TypeIndex
    locals: tuple[ValueType, ...]
    body: Expression


@dataclass(frozen=True)
class Module:
    """A decoded WebAssembly module.

    ``sections`` holds every section in the order it appeared in the binary,
    custom sections included.
    """

    sections: tuple[Section, ...]

    def sections_of(self, kind: type[S]) -> list[S]:
        """Return all sections of the given class, in order."""
        return [section for section in self.sections if isinstance(section, kind)]

    def section(self, kind: type[S]) -> S | None:
        """Return the first section of the given class, or None."""
        for section in self.sections:
            if isinstance(section, kind):
                return section
        return None

    @property
    def types(self) -> tuple[FunctionType, ...]:
        return tuple(t for s in self.sections_of(TypeSection) for t in s.types)

    @property
    def imports(self) -> tuple[Import, ...]:
        return tuple(i for s in self.sections_of(ImportSection) for i in s.imports)

    @property
    def exports(self) -> tuple[Export, ...]:
        return tuple(e for s in self.sections_of(ExportSection) for e in s.entries)

    @property
    def start(self) -> FunctionIndex | None:
        section = self.section(StartSection)
        return section.function.index if section is not None else None

    def functions(self) -> tuple[Function, ...]:
        """Pair the function section's type indices with the code bodies."""
        type_indices = [t for s in self.sections_of(FunctionSection) for t in s.types]
        bodies = [c for s in self.sections_of(CodeSection) for c in s.functions]
        if len(type_indices) != len(bodies):
            raise ValidationError(
                f"Code section count ({len(bodies)}) != function section count "
                f"({len(type_indices)})"
            )
        return tuple(
            Function(type=type_index, locals=code.func.local_types(), body=code.func.body)
            for type_index, code in zip(type_indices, bodies)
        )
