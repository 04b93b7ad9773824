"""WebAssembly binary format decoder."""

import logging
import struct
from pathlib import Path
from typing import BinaryIO, Callable, TypeVar

from . import leb128, opcodes
from .config import DEFAULT_CONFIG, DecoderConfig
from .errors import DecodeError, ParseErrorKind, with_eof_check
from .opcodes import Immediate
from .stream import ConstrainedStream, InputStream, MemoryStream, ReconsumableStream
from .types import (
    VALTYPE_ENCODING,
    ActiveData,
    BlockArgs,
    BlockType,
    Code,
    CodeSection,
    CustomSection,
    Data,
    DataCountSection,
    DataIndex,
    DataSection,
    DeclarativeElement,
    Element,
    ElementIndex,
    ElementInit,
    ElementSection,
    ElementSegment,
    EmptyBlockType,
    Export,
    ExportSection,
    Expression,
    F32Immediate,
    Func,
    FunctionIndex,
    FunctionSection,
    FunctionType,
    Global,
    GlobalIndex,
    GlobalSection,
    GlobalType,
    IfArgs,
    Import,
    ImportSection,
    IndexBlockType,
    IndirectCallArgs,
    Instruction,
    InstructionArguments,
    LabelIndex,
    Limits,
    LocalIndex,
    Locals,
    Memory,
    MemoryArgument,
    MemoryIndex,
    MemorySection,
    MemoryType,
    Module,
    PassiveData,
    PassiveElement,
    ResultType,
    Section,
    StartFunction,
    StartSection,
    Table,
    TableBranchArgs,
    TableElementArgs,
    TableIndex,
    TableSection,
    TableTableArgs,
    TableType,
    TypeIndex,
    TypeSection,
    ValueBlockType,
    ValueType,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# WASM magic number and version
WASM_MAGIC = b"\x00asm"
WASM_VERSION = b"\x01\x00\x00\x00"

# Function type form
FUNC_TYPE_FORM = 0x60

# Block type encoding
BLOCK_TYPE_EMPTY = 0x40

# Element segment flag bits. With ELEMENT_NOT_ACTIVE set, the second bit
# marks a declarative segment instead of an explicit table index.
ELEMENT_NOT_ACTIVE = 0x01
ELEMENT_EXPLICIT_TABLE = 0x02
ELEMENT_EXPRESSIONS = 0x04


def _read_byte(stream: InputStream, kind: ParseErrorKind) -> int:
    data = stream.read(1)
    if not data:
        raise DecodeError(with_eof_check(stream, kind))
    return data[0]


def _read_unsigned(stream: InputStream, kind: ParseErrorKind, bits: int = 32) -> int:
    try:
        return leb128.read_unsigned(stream, bits)
    except leb128.LEB128Error as e:
        raise DecodeError(with_eof_check(stream, kind), str(e)) from e


def _read_signed(stream: InputStream, kind: ParseErrorKind, bits: int = 32) -> int:
    try:
        return leb128.read_signed(stream, bits)
    except leb128.LEB128Error as e:
        raise DecodeError(with_eof_check(stream, kind), str(e)) from e


def _read_to_end(stream: InputStream) -> bytes:
    data = bytearray()
    while True:
        chunk = stream.read(4096)
        if not chunk:
            return bytes(data)
        data += chunk


class _Frame:
    """An open structured block while its body is being decoded.

    The outermost frame of an expression has no opcode.
    """

    __slots__ = ("opcode", "block_type", "instructions", "then_instructions")

    def __init__(self, opcode: int | None, block_type: BlockType | None) -> None:
        self.opcode = opcode
        self.block_type = block_type
        self.instructions: list[Instruction] = []
        self.then_instructions: list[Instruction] | None = None

    def close(self) -> Instruction | Expression:
        if self.opcode is None:
            return Expression(tuple(self.instructions))
        if self.opcode == opcodes.IF:
            if self.then_instructions is None:
                then_arm, else_arm = self.instructions, []
            else:
                then_arm, else_arm = self.then_instructions, self.instructions
            return Instruction(
                self.opcode, IfArgs(self.block_type, tuple(then_arm), tuple(else_arm))
            )
        return Instruction(self.opcode, BlockArgs(self.block_type, tuple(self.instructions)))


class Decoder:
    """Turns WebAssembly binaries into ``Module`` trees.

    A decoder only holds its configuration, so one instance can be shared
    between threads as long as each decode gets its own stream.
    """

    def __init__(self, config: DecoderConfig | None = None) -> None:
        self.config = config if config is not None else DEFAULT_CONFIG
        self._section_parsers: dict[int, Callable[[InputStream], Section]] = {
            CustomSection.section_id: self.parse_custom_section,
            TypeSection.section_id: self.parse_type_section,
            ImportSection.section_id: self.parse_import_section,
            FunctionSection.section_id: self.parse_function_section,
            TableSection.section_id: self.parse_table_section,
            MemorySection.section_id: self.parse_memory_section,
            GlobalSection.section_id: self.parse_global_section,
            ExportSection.section_id: self.parse_export_section,
            StartSection.section_id: self.parse_start_section,
            ElementSection.section_id: self.parse_element_section,
            CodeSection.section_id: self.parse_code_section,
            DataSection.section_id: self.parse_data_section,
            DataCountSection.section_id: self.parse_data_count_section,
        }

    # Vectors, names and indices

    def _read_count(self, stream: InputStream) -> int:
        count = _read_unsigned(stream, ParseErrorKind.EXPECTED_SIZE)
        if count > self.config.max_vector_length:
            raise DecodeError(
                ParseErrorKind.HUGE_ALLOCATION_REQUESTED,
                f"vector of {count} entries exceeds limit of {self.config.max_vector_length}",
            )
        return count

    def parse_vector(
        self, stream: InputStream, parse_entry: Callable[[InputStream], T]
    ) -> tuple[T, ...]:
        """Decode a count-prefixed vector of entries."""
        count = self._read_count(stream)
        return tuple(parse_entry(stream) for _ in range(count))

    def parse_bytes(self, stream: InputStream) -> bytes:
        """Decode a length-prefixed byte vector."""
        length = _read_unsigned(stream, ParseErrorKind.EXPECTED_SIZE)
        return stream.read_or_error(length)

    def parse_name(self, stream: InputStream) -> str:
        """Decode a length-prefixed UTF-8 name.

        Encoding validity is not checked here; undecodable bytes survive as
        surrogate escapes.
        """
        return self.parse_bytes(stream).decode("utf-8", errors="surrogateescape")

    def _parse_index(self, stream: InputStream, index_type: type[T]) -> T:
        return index_type(_read_unsigned(stream, ParseErrorKind.EXPECTED_INDEX))

    def parse_type_index(self, stream: InputStream) -> TypeIndex:
        return self._parse_index(stream, TypeIndex)

    def parse_function_index(self, stream: InputStream) -> FunctionIndex:
        return self._parse_index(stream, FunctionIndex)

    def parse_table_index(self, stream: InputStream) -> TableIndex:
        return self._parse_index(stream, TableIndex)

    def parse_memory_index(self, stream: InputStream) -> MemoryIndex:
        return self._parse_index(stream, MemoryIndex)

    def parse_local_index(self, stream: InputStream) -> LocalIndex:
        return self._parse_index(stream, LocalIndex)

    def parse_global_index(self, stream: InputStream) -> GlobalIndex:
        return self._parse_index(stream, GlobalIndex)

    def parse_label_index(self, stream: InputStream) -> LabelIndex:
        return self._parse_index(stream, LabelIndex)

    def parse_data_index(self, stream: InputStream) -> DataIndex:
        return self._parse_index(stream, DataIndex)

    def parse_element_index(self, stream: InputStream) -> ElementIndex:
        return self._parse_index(stream, ElementIndex)

    # Types

    def parse_value_type(self, stream: InputStream) -> ValueType:
        byte = _read_byte(stream, ParseErrorKind.EXPECTED_KIND_TAG)
        if byte not in VALTYPE_ENCODING:
            raise DecodeError(ParseErrorKind.INVALID_TYPE, f"unknown value type 0x{byte:02x}")
        return VALTYPE_ENCODING[byte]

    def parse_reference_type(self, stream: InputStream) -> ValueType:
        reference_type = self.parse_value_type(stream)
        if not reference_type.is_reference:
            raise DecodeError(
                ParseErrorKind.INVALID_TYPE, f"expected a reference type, got {reference_type}"
            )
        return reference_type

    def parse_result_type(self, stream: InputStream) -> ResultType:
        return ResultType(self.parse_vector(stream, self.parse_value_type))

    def parse_function_type(self, stream: InputStream) -> FunctionType:
        form = _read_byte(stream, ParseErrorKind.EXPECTED_KIND_TAG)
        if form != FUNC_TYPE_FORM:
            raise DecodeError(
                ParseErrorKind.INVALID_TAG,
                f"expected function type marker 0x60, got 0x{form:02x}",
            )
        parameters = self.parse_vector(stream, self.parse_value_type)
        results = self.parse_vector(stream, self.parse_value_type)
        return FunctionType(parameters, results)

    def parse_limits(self, stream: InputStream) -> Limits:
        flag = _read_byte(stream, ParseErrorKind.EXPECTED_KIND_TAG)
        if flag > 1:
            raise DecodeError(ParseErrorKind.INVALID_TAG, f"unknown limits flag 0x{flag:02x}")
        minimum = _read_unsigned(stream, ParseErrorKind.EXPECTED_SIZE)
        maximum = None
        if flag == 1:
            maximum = _read_unsigned(stream, ParseErrorKind.EXPECTED_SIZE)
        return Limits(minimum, maximum)

    def parse_memory_type(self, stream: InputStream) -> MemoryType:
        return MemoryType(self.parse_limits(stream))

    def parse_table_type(self, stream: InputStream) -> TableType:
        element_type = self.parse_value_type(stream)
        if not element_type.is_reference:
            raise DecodeError(
                ParseErrorKind.INVALID_TYPE,
                f"table element type must be a reference type, got {element_type}",
            )
        return TableType(element_type, self.parse_limits(stream))

    def parse_global_type(self, stream: InputStream) -> GlobalType:
        value_type = self.parse_value_type(stream)
        mutability = _read_byte(stream, ParseErrorKind.EXPECTED_KIND_TAG)
        if mutability > 1:
            raise DecodeError(
                ParseErrorKind.INVALID_TAG, f"unknown mutability flag 0x{mutability:02x}"
            )
        return GlobalType(value_type, mutability == 1)

    def parse_block_type(self, stream: InputStream) -> BlockType:
        """Decode a block type (empty, value type, or type index).

        The three forms share one signed 33-bit LEB128 space: 0x40 (-64) is
        the empty type, the single-byte negative value-type encodings are
        inline types and non-negative values are type indices.
        """
        kind = _read_byte(stream, ParseErrorKind.EXPECTED_KIND_TAG)
        if kind == BLOCK_TYPE_EMPTY:
            return EmptyBlockType()
        if kind in VALTYPE_ENCODING:
            return ValueBlockType(VALTYPE_ENCODING[kind])

        # Not a single-byte form: put the byte back and read the whole index
        reconsumable = ReconsumableStream(stream)
        reconsumable.unread(bytes([kind]))
        value = _read_signed(reconsumable, ParseErrorKind.EXPECTED_INDEX, bits=33)
        if value < 0:
            raise DecodeError(ParseErrorKind.INVALID_TYPE, f"invalid block type {value}")
        return IndexBlockType(TypeIndex(value))

    # Instructions

    def _read_opcode(self, stream: InputStream) -> int:
        opcode = _read_byte(stream, ParseErrorKind.EXPECTED_KIND_TAG)

        if opcode == opcodes.EXTENDED_PREFIX:
            sub_opcode = _read_unsigned(stream, ParseErrorKind.EXPECTED_KIND_TAG)
            if sub_opcode > 0xFF or opcodes.extended(sub_opcode) not in opcodes.OPCODES:
                raise DecodeError(
                    ParseErrorKind.INVALID_TAG, f"unknown extended opcode 0xfc 0x{sub_opcode:02x}"
                )
            return opcodes.extended(sub_opcode)

        if opcode in opcodes.UNSUPPORTED_PREFIXES:
            raise DecodeError(
                ParseErrorKind.NOT_IMPLEMENTED,
                f"{opcodes.UNSUPPORTED_PREFIXES[opcode]} instructions (prefix 0x{opcode:02x})",
            )

        if opcode not in opcodes.OPCODES:
            raise DecodeError(ParseErrorKind.INVALID_TAG, f"unknown opcode 0x{opcode:02x}")
        return opcode

    def _expect_zero_byte(self, stream: InputStream) -> None:
        reserved = _read_byte(stream, ParseErrorKind.INVALID_INPUT)
        if reserved != 0:
            raise DecodeError(
                ParseErrorKind.INVALID_INPUT, f"reserved byte must be zero, got 0x{reserved:02x}"
            )

    def _parse_arguments(self, stream: InputStream, opcode: int) -> InstructionArguments:
        """Decode the operand of a non-structured instruction."""
        immediate = opcodes.OPCODES[opcode][1]

        if immediate is Immediate.NONE:
            return None

        if immediate is Immediate.LABEL:
            return self.parse_label_index(stream)

        if immediate is Immediate.FUNCTION:
            return self.parse_function_index(stream)

        if immediate is Immediate.LOCAL:
            return self.parse_local_index(stream)

        if immediate is Immediate.GLOBAL:
            return self.parse_global_index(stream)

        if immediate is Immediate.TABLE:
            return self.parse_table_index(stream)

        if immediate is Immediate.I32:
            return _read_signed(stream, ParseErrorKind.INVALID_INPUT, 32)

        if immediate is Immediate.I64:
            return _read_signed(stream, ParseErrorKind.INVALID_INPUT, 64)

        if immediate is Immediate.F32:
            return F32Immediate(struct.unpack("<I", stream.read_or_error(4))[0])

        if immediate is Immediate.F64:
            return struct.unpack("<d", stream.read_or_error(8))[0]

        if immediate is Immediate.MEMARG:
            align = _read_unsigned(stream, ParseErrorKind.INVALID_INPUT)
            offset = _read_unsigned(stream, ParseErrorKind.INVALID_INPUT)
            return MemoryArgument(align, offset)

        if immediate is Immediate.BR_TABLE:
            labels = self.parse_vector(stream, self.parse_label_index)
            default = self.parse_label_index(stream)
            return TableBranchArgs(labels, default)

        if immediate is Immediate.CALL_INDIRECT:
            type_index = self.parse_type_index(stream)
            table_index = self.parse_table_index(stream)
            return IndirectCallArgs(type_index, table_index)

        if immediate is Immediate.MEMORY:
            self._expect_zero_byte(stream)
            return None

        if immediate is Immediate.MEMORY_PAIR:
            self._expect_zero_byte(stream)
            self._expect_zero_byte(stream)
            return None

        if immediate is Immediate.REF_TYPE:
            return self.parse_reference_type(stream)

        if immediate is Immediate.VALUE_TYPES:
            return self.parse_vector(stream, self.parse_value_type)

        if immediate is Immediate.DATA:
            return self.parse_data_index(stream)

        if immediate is Immediate.DATA_MEMORY:
            data_index = self.parse_data_index(stream)
            self._expect_zero_byte(stream)
            return data_index

        if immediate is Immediate.ELEMENT:
            return self.parse_element_index(stream)

        if immediate is Immediate.TABLE_INIT:
            element_index = self.parse_element_index(stream)
            table_index = self.parse_table_index(stream)
            return TableElementArgs(element_index, table_index)

        if immediate is Immediate.TABLE_COPY:
            destination = self.parse_table_index(stream)
            source = self.parse_table_index(stream)
            return TableTableArgs(destination, source)

        raise DecodeError(
            ParseErrorKind.NOT_IMPLEMENTED, f"unhandled operand for {opcodes.OPCODE_NAMES[opcode]}"
        )

    def _parse_block_body(self, stream: InputStream, root: _Frame) -> Instruction | Expression:
        """Decode instructions up to the ``end`` that closes ``root``.

        Nested blocks are tracked on an explicit stack instead of by
        recursion, so nesting depth is bounded only by the input size.
        """
        frames = [root]
        while True:
            opcode = self._read_opcode(stream)
            frame = frames[-1]

            if opcode == opcodes.END:
                frames.pop()
                closed = frame.close()
                if not frames:
                    return closed
                frames[-1].instructions.append(closed)

            elif opcode == opcodes.ELSE:
                if frame.opcode != opcodes.IF or frame.then_instructions is not None:
                    raise DecodeError(ParseErrorKind.INVALID_INPUT, "else outside of an if block")
                frame.then_instructions = frame.instructions
                frame.instructions = []

            elif opcode in opcodes.BLOCK_TYPE:
                frames.append(_Frame(opcode, self.parse_block_type(stream)))

            else:
                frame.instructions.append(
                    Instruction(opcode, self._parse_arguments(stream, opcode))
                )

    def parse_instruction(self, stream: InputStream) -> Instruction:
        """Decode a single instruction, including any nested blocks."""
        opcode = self._read_opcode(stream)
        if opcode in opcodes.BLOCK_TYPE:
            return self._parse_block_body(stream, _Frame(opcode, self.parse_block_type(stream)))
        if opcode in (opcodes.ELSE, opcodes.END):
            raise DecodeError(
                ParseErrorKind.INVALID_INPUT,
                f"{opcodes.OPCODE_NAMES[opcode]} without an open block",
            )
        return Instruction(opcode, self._parse_arguments(stream, opcode))

    def parse_expression(self, stream: InputStream) -> Expression:
        """Decode an expression (instruction sequence ending with END)."""
        return self._parse_block_body(stream, _Frame(None, None))

    # Functions

    def parse_locals(self, stream: InputStream) -> Locals:
        count = _read_unsigned(stream, ParseErrorKind.EXPECTED_SIZE)
        return Locals(count, self.parse_value_type(stream))

    def parse_func(self, stream: InputStream) -> Func:
        locals_ = self.parse_vector(stream, self.parse_locals)
        total = sum(run.count for run in locals_)
        if total > self.config.max_function_locals:
            raise DecodeError(
                ParseErrorKind.HUGE_ALLOCATION_REQUESTED,
                f"{total} locals exceeds limit of {self.config.max_function_locals}",
            )
        return Func(locals_, self.parse_expression(stream))

    def parse_code(self, stream: InputStream) -> Code:
        size = _read_unsigned(stream, ParseErrorKind.EXPECTED_SIZE)
        body_stream = ConstrainedStream(stream, size)
        func = self.parse_func(body_stream)
        if body_stream.remaining:
            raise DecodeError(
                with_eof_check(body_stream, ParseErrorKind.INVALID_SIZE),
                f"function body declared {size} bytes, {body_stream.remaining} left unread",
            )
        return Code(size, func)

    # Section entries

    def parse_import(self, stream: InputStream) -> Import:
        module = self.parse_name(stream)
        name = self.parse_name(stream)
        kind = _read_byte(stream, ParseErrorKind.EXPECTED_KIND_TAG)
        if kind == 0x00:
            description = self.parse_type_index(stream)
        elif kind == 0x01:
            description = self.parse_table_type(stream)
        elif kind == 0x02:
            description = self.parse_memory_type(stream)
        elif kind == 0x03:
            description = self.parse_global_type(stream)
        else:
            raise DecodeError(ParseErrorKind.INVALID_TAG, f"unknown import kind 0x{kind:02x}")
        return Import(module, name, description)

    def parse_table(self, stream: InputStream) -> Table:
        return Table(self.parse_table_type(stream))

    def parse_memory(self, stream: InputStream) -> Memory:
        return Memory(self.parse_memory_type(stream))

    def parse_global(self, stream: InputStream) -> Global:
        global_type = self.parse_global_type(stream)
        return Global(global_type, self.parse_expression(stream))

    def parse_export(self, stream: InputStream) -> Export:
        name = self.parse_name(stream)
        kind = _read_byte(stream, ParseErrorKind.EXPECTED_KIND_TAG)
        if kind == 0x00:
            description = self.parse_function_index(stream)
        elif kind == 0x01:
            description = self.parse_table_index(stream)
        elif kind == 0x02:
            description = self.parse_memory_index(stream)
        elif kind == 0x03:
            description = self.parse_global_index(stream)
        else:
            raise DecodeError(ParseErrorKind.INVALID_TAG, f"unknown export kind 0x{kind:02x}")
        return Export(name, description)

    def _parse_element_type(self, stream: InputStream, flags: int) -> ValueType:
        if flags & ELEMENT_EXPRESSIONS:
            return self.parse_reference_type(stream)
        kind = _read_byte(stream, ParseErrorKind.EXPECTED_KIND_TAG)
        if kind != 0x00:
            raise DecodeError(ParseErrorKind.INVALID_TAG, f"unknown element kind 0x{kind:02x}")
        return ValueType.FUNCREF

    def _parse_element_init(self, stream: InputStream, flags: int) -> tuple[ElementInit, ...]:
        if flags & ELEMENT_EXPRESSIONS:
            return self.parse_vector(stream, self.parse_expression)
        return self.parse_vector(stream, self.parse_function_index)

    def parse_element(self, stream: InputStream) -> ElementSegment:
        """Decode an element segment.

        Segment flags:
        - 0: Active, table 0, offset, vec(funcidx)
        - 1: Passive, elemkind, vec(funcidx)
        - 2: Active, tableidx, offset, elemkind, vec(funcidx)
        - 3: Declarative, elemkind, vec(funcidx)
        - 4: Active, table 0, offset, vec(expr)
        - 5: Passive, reftype, vec(expr)
        - 6: Active, tableidx, offset, reftype, vec(expr)
        - 7: Declarative, reftype, vec(expr)
        """
        flags = _read_unsigned(stream, ParseErrorKind.EXPECTED_KIND_TAG)
        if flags > 7:
            raise DecodeError(ParseErrorKind.INVALID_TAG, f"unknown element segment flags {flags}")

        if flags & ELEMENT_NOT_ACTIVE:
            element_type = self._parse_element_type(stream, flags)
            init = self._parse_element_init(stream, flags)
            if flags & ELEMENT_EXPLICIT_TABLE:
                return DeclarativeElement(element_type, init)
            return PassiveElement(element_type, init)

        if flags & ELEMENT_EXPLICIT_TABLE:
            table = self.parse_table_index(stream)
            offset = self.parse_expression(stream)
            element_type = self._parse_element_type(stream, flags)
        else:
            table = TableIndex(0)
            offset = self.parse_expression(stream)
            element_type = ValueType.FUNCREF
        return Element(table, offset, self._parse_element_init(stream, flags), element_type)

    def parse_data(self, stream: InputStream) -> Data:
        """Decode a data segment.

        Segment kinds:
        - 0: Active, memory 0, expr offset, bytes
        - 1: Passive, bytes
        - 2: Active, memory index, expr offset, bytes
        """
        kind = _read_byte(stream, ParseErrorKind.EXPECTED_KIND_TAG)
        if kind == 0x00:
            offset = self.parse_expression(stream)
            return Data(ActiveData(self.parse_bytes(stream), MemoryIndex(0), offset))
        if kind == 0x01:
            return Data(PassiveData(self.parse_bytes(stream)))
        if kind == 0x02:
            index = self.parse_memory_index(stream)
            offset = self.parse_expression(stream)
            return Data(ActiveData(self.parse_bytes(stream), index, offset))
        raise DecodeError(ParseErrorKind.INVALID_TAG, f"unknown data segment kind 0x{kind:02x}")

    # Sections

    def parse_custom_section(self, stream: InputStream) -> CustomSection:
        name = self.parse_name(stream)
        return CustomSection(name, _read_to_end(stream))

    def parse_type_section(self, stream: InputStream) -> TypeSection:
        return TypeSection(self.parse_vector(stream, self.parse_function_type))

    def parse_import_section(self, stream: InputStream) -> ImportSection:
        return ImportSection(self.parse_vector(stream, self.parse_import))

    def parse_function_section(self, stream: InputStream) -> FunctionSection:
        return FunctionSection(self.parse_vector(stream, self.parse_type_index))

    def parse_table_section(self, stream: InputStream) -> TableSection:
        return TableSection(self.parse_vector(stream, self.parse_table))

    def parse_memory_section(self, stream: InputStream) -> MemorySection:
        return MemorySection(self.parse_vector(stream, self.parse_memory))

    def parse_global_section(self, stream: InputStream) -> GlobalSection:
        return GlobalSection(self.parse_vector(stream, self.parse_global))

    def parse_export_section(self, stream: InputStream) -> ExportSection:
        return ExportSection(self.parse_vector(stream, self.parse_export))

    def parse_start_section(self, stream: InputStream) -> StartSection:
        return StartSection(StartFunction(self.parse_function_index(stream)))

    def parse_element_section(self, stream: InputStream) -> ElementSection:
        return ElementSection(self.parse_vector(stream, self.parse_element))

    def parse_code_section(self, stream: InputStream) -> CodeSection:
        return CodeSection(self.parse_vector(stream, self.parse_code))

    def parse_data_section(self, stream: InputStream) -> DataSection:
        return DataSection(self.parse_vector(stream, self.parse_data))

    def parse_data_count_section(self, stream: InputStream) -> DataCountSection:
        if stream.unreliable_eof():
            return DataCountSection(None)
        return DataCountSection(_read_unsigned(stream, ParseErrorKind.EXPECTED_SIZE))

    def parse_section(self, section_id: int, stream: InputStream) -> Section:
        """Decode the payload of the section with the given id."""
        parser = self._section_parsers.get(section_id)
        if parser is None:
            raise DecodeError(ParseErrorKind.INVALID_TAG, f"unknown section id {section_id}")
        return parser(stream)

    # Module

    def _check_header(self, stream: InputStream, expected: bytes, kind: ParseErrorKind) -> None:
        data = stream.read(len(expected))
        if len(data) < len(expected):
            raise DecodeError(with_eof_check(stream, kind), "truncated module header")
        if data != expected:
            raise DecodeError(kind, f"expected {expected!r}, got {data!r}")

    def parse_module(self, stream: InputStream) -> Module:
        """Decode a whole module from ``stream``.

        Any failure aborts the decode; the raised ``DecodeError`` carries the
        offset at which decoding stopped.
        """
        try:
            self._check_header(stream, WASM_MAGIC, ParseErrorKind.INVALID_MODULE_MAGIC)
            self._check_header(stream, WASM_VERSION, ParseErrorKind.INVALID_MODULE_VERSION)

            sections: list[Section] = []
            while not stream.unreliable_eof():
                id_byte = stream.read(1)
                if not id_byte:
                    break
                section_id = id_byte[0]
                if section_id not in self._section_parsers:
                    raise DecodeError(
                        ParseErrorKind.INVALID_TAG, f"unknown section id {section_id}"
                    )

                size = _read_unsigned(stream, ParseErrorKind.EXPECTED_SIZE)
                logger.debug(
                    "Decoding section %d (%d bytes) at offset %d",
                    section_id,
                    size,
                    stream.tell(),
                )

                section_stream = ConstrainedStream(stream, size)
                section = self.parse_section(section_id, section_stream)
                if section_stream.remaining:
                    raise DecodeError(
                        with_eof_check(section_stream, ParseErrorKind.INVALID_SIZE),
                        f"section {section_id} declared {size} bytes, "
                        f"{section_stream.remaining} left unread",
                    )
                sections.append(section)
        except DecodeError as e:
            if e.offset is None:
                e.offset = stream.tell()
            raise

        logger.debug("Decoded module with %d sections", len(sections))
        return Module(tuple(sections))


def decode_module(
    source: bytes | bytearray | memoryview | BinaryIO | Path | InputStream,
    config: DecoderConfig | None = None,
) -> Module:
    """Decode a WebAssembly module from binary format.

    Args:
        source: WASM bytes, file-like object, path to .wasm file, or an
            ``InputStream``
        config: Decoder limits; defaults to ``DecoderConfig()``

    Returns:
        Decoded Module object

    Raises:
        DecodeError: If the binary format is invalid
    """
    if isinstance(source, InputStream):
        stream = source
    elif isinstance(source, Path):
        stream = MemoryStream(source.read_bytes())
    elif isinstance(source, (bytes, bytearray, memoryview)):
        stream = MemoryStream(bytes(source))
    else:
        # Assume file-like object
        stream = MemoryStream(source.read())

    return Decoder(config).parse_module(stream)
