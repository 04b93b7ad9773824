"""WebAssembly opcode definitions.

Single-byte opcodes are plain integers. Opcodes behind the 0xFC prefix are
folded into one integer as ``0xFC00 | sub_opcode`` so that every decoded
instruction carries a single opcode value.
"""

from enum import Enum


class Immediate(Enum):
    """Shape of the operand that follows an opcode."""

    NONE = "none"
    BLOCK = "block"
    IF = "if"
    LABEL = "label"
    BR_TABLE = "br_table"
    FUNCTION = "function"
    CALL_INDIRECT = "call_indirect"
    LOCAL = "local"
    GLOBAL = "global"
    TABLE = "table"
    MEMARG = "memarg"
    MEMORY = "memory"  # single reserved 0x00 byte
    MEMORY_PAIR = "memory_pair"  # two reserved 0x00 bytes
    I32 = "i32"
    I64 = "i64"
    F32 = "f32"
    F64 = "f64"
    REF_TYPE = "ref_type"
    VALUE_TYPES = "value_types"
    DATA = "data"
    DATA_MEMORY = "data_memory"  # data index, then a reserved 0x00 byte
    ELEMENT = "element"
    TABLE_INIT = "table_init"
    TABLE_COPY = "table_copy"


# Control instructions
UNREACHABLE = 0x00
NOP = 0x01
BLOCK = 0x02
LOOP = 0x03
IF = 0x04
ELSE = 0x05
END = 0x0B
BR = 0x0C
BR_IF = 0x0D
BR_TABLE = 0x0E
RETURN = 0x0F
CALL = 0x10
CALL_INDIRECT = 0x11

# Parametric instructions
DROP = 0x1A
SELECT = 0x1B
SELECT_T = 0x1C

# Variable instructions
LOCAL_GET = 0x20
LOCAL_SET = 0x21
LOCAL_TEE = 0x22
GLOBAL_GET = 0x23
GLOBAL_SET = 0x24

# Table instructions
TABLE_GET = 0x25
TABLE_SET = 0x26

# Memory instructions (0x28 - 0x3E are loads and stores)
FIRST_MEMORY_ACCESS = 0x28
MEMORY_SIZE = 0x3F
MEMORY_GROW = 0x40

# Constants
I32_CONST = 0x41
I64_CONST = 0x42
F32_CONST = 0x43
F64_CONST = 0x44

# Numeric instructions (0x45 - 0xC4 take no operand)
FIRST_NUMERIC = 0x45

# Reference instructions
REF_NULL = 0xD0
REF_IS_NULL = 0xD1
REF_FUNC = 0xD2

# Prefixes
GC_PREFIX = 0xFB
EXTENDED_PREFIX = 0xFC
SIMD_PREFIX = 0xFD
THREADS_PREFIX = 0xFE

# Prefixes that are recognised but not decoded
UNSUPPORTED_PREFIXES = {
    GC_PREFIX: "gc",
    SIMD_PREFIX: "simd",
    THREADS_PREFIX: "threads",
}


def extended(sub_opcode: int) -> int:
    """Return the folded opcode for a 0xFC-prefixed instruction."""
    return (EXTENDED_PREFIX << 8) | sub_opcode


# 0xFC-prefixed instructions
MEMORY_INIT = extended(0x08)
DATA_DROP = extended(0x09)
MEMORY_COPY = extended(0x0A)
MEMORY_FILL = extended(0x0B)
TABLE_INIT = extended(0x0C)
ELEM_DROP = extended(0x0D)
TABLE_COPY = extended(0x0E)
TABLE_GROW = extended(0x0F)
TABLE_SIZE = extended(0x10)
TABLE_FILL = extended(0x11)

_MEMORY_ACCESS_NAMES = """
    i32.load i64.load f32.load f64.load
    i32.load8_s i32.load8_u i32.load16_s i32.load16_u
    i64.load8_s i64.load8_u i64.load16_s i64.load16_u i64.load32_s i64.load32_u
    i32.store i64.store f32.store f64.store
    i32.store8 i32.store16 i64.store8 i64.store16 i64.store32
""".split()

_NUMERIC_NAMES = """
    i32.eqz i32.eq i32.ne i32.lt_s i32.lt_u i32.gt_s i32.gt_u
    i32.le_s i32.le_u i32.ge_s i32.ge_u
    i64.eqz i64.eq i64.ne i64.lt_s i64.lt_u i64.gt_s i64.gt_u
    i64.le_s i64.le_u i64.ge_s i64.ge_u
    f32.eq f32.ne f32.lt f32.gt f32.le f32.ge
    f64.eq f64.ne f64.lt f64.gt f64.le f64.ge
    i32.clz i32.ctz i32.popcnt i32.add i32.sub i32.mul i32.div_s i32.div_u
    i32.rem_s i32.rem_u i32.and i32.or i32.xor i32.shl i32.shr_s i32.shr_u
    i32.rotl i32.rotr
    i64.clz i64.ctz i64.popcnt i64.add i64.sub i64.mul i64.div_s i64.div_u
    i64.rem_s i64.rem_u i64.and i64.or i64.xor i64.shl i64.shr_s i64.shr_u
    i64.rotl i64.rotr
    f32.abs f32.neg f32.ceil f32.floor f32.trunc f32.nearest f32.sqrt
    f32.add f32.sub f32.mul f32.div f32.min f32.max f32.copysign
    f64.abs f64.neg f64.ceil f64.floor f64.trunc f64.nearest f64.sqrt
    f64.add f64.sub f64.mul f64.div f64.min f64.max f64.copysign
    i32.wrap_i64 i32.trunc_f32_s i32.trunc_f32_u i32.trunc_f64_s i32.trunc_f64_u
    i64.extend_i32_s i64.extend_i32_u
    i64.trunc_f32_s i64.trunc_f32_u i64.trunc_f64_s i64.trunc_f64_u
    f32.convert_i32_s f32.convert_i32_u f32.convert_i64_s f32.convert_i64_u
    f32.demote_f64
    f64.convert_i32_s f64.convert_i32_u f64.convert_i64_s f64.convert_i64_u
    f64.promote_f32
    i32.reinterpret_f32 i64.reinterpret_f64 f32.reinterpret_i32 f64.reinterpret_i64
    i32.extend8_s i32.extend16_s i64.extend8_s i64.extend16_s i64.extend32_s
""".split()

_SATURATING_NAMES = """
    i32.trunc_sat_f32_s i32.trunc_sat_f32_u i32.trunc_sat_f64_s i32.trunc_sat_f64_u
    i64.trunc_sat_f32_s i64.trunc_sat_f32_u i64.trunc_sat_f64_s i64.trunc_sat_f64_u
""".split()

# opcode -> (mnemonic, operand shape)
OPCODES: dict[int, tuple[str, Immediate]] = {
    UNREACHABLE: ("unreachable", Immediate.NONE),
    NOP: ("nop", Immediate.NONE),
    BLOCK: ("block", Immediate.BLOCK),
    LOOP: ("loop", Immediate.BLOCK),
    IF: ("if", Immediate.IF),
    ELSE: ("else", Immediate.NONE),
    END: ("end", Immediate.NONE),
    BR: ("br", Immediate.LABEL),
    BR_IF: ("br_if", Immediate.LABEL),
    BR_TABLE: ("br_table", Immediate.BR_TABLE),
    RETURN: ("return", Immediate.NONE),
    CALL: ("call", Immediate.FUNCTION),
    CALL_INDIRECT: ("call_indirect", Immediate.CALL_INDIRECT),
    DROP: ("drop", Immediate.NONE),
    SELECT: ("select", Immediate.NONE),
    SELECT_T: ("select", Immediate.VALUE_TYPES),
    LOCAL_GET: ("local.get", Immediate.LOCAL),
    LOCAL_SET: ("local.set", Immediate.LOCAL),
    LOCAL_TEE: ("local.tee", Immediate.LOCAL),
    GLOBAL_GET: ("global.get", Immediate.GLOBAL),
    GLOBAL_SET: ("global.set", Immediate.GLOBAL),
    TABLE_GET: ("table.get", Immediate.TABLE),
    TABLE_SET: ("table.set", Immediate.TABLE),
    MEMORY_SIZE: ("memory.size", Immediate.MEMORY),
    MEMORY_GROW: ("memory.grow", Immediate.MEMORY),
    I32_CONST: ("i32.const", Immediate.I32),
    I64_CONST: ("i64.const", Immediate.I64),
    F32_CONST: ("f32.const", Immediate.F32),
    F64_CONST: ("f64.const", Immediate.F64),
    REF_NULL: ("ref.null", Immediate.REF_TYPE),
    REF_IS_NULL: ("ref.is_null", Immediate.NONE),
    REF_FUNC: ("ref.func", Immediate.FUNCTION),
    MEMORY_INIT: ("memory.init", Immediate.DATA_MEMORY),
    DATA_DROP: ("data.drop", Immediate.DATA),
    MEMORY_COPY: ("memory.copy", Immediate.MEMORY_PAIR),
    MEMORY_FILL: ("memory.fill", Immediate.MEMORY),
    TABLE_INIT: ("table.init", Immediate.TABLE_INIT),
    ELEM_DROP: ("elem.drop", Immediate.ELEMENT),
    TABLE_COPY: ("table.copy", Immediate.TABLE_COPY),
    TABLE_GROW: ("table.grow", Immediate.TABLE),
    TABLE_SIZE: ("table.size", Immediate.TABLE),
    TABLE_FILL: ("table.fill", Immediate.TABLE),
}

for _offset, _name in enumerate(_MEMORY_ACCESS_NAMES):
    OPCODES[FIRST_MEMORY_ACCESS + _offset] = (_name, Immediate.MEMARG)

for _offset, _name in enumerate(_NUMERIC_NAMES):
    OPCODES[FIRST_NUMERIC + _offset] = (_name, Immediate.NONE)

for _offset, _name in enumerate(_SATURATING_NAMES):
    OPCODES[extended(_offset)] = (_name, Immediate.NONE)

del _offset, _name

# Opcode to name mapping
OPCODE_NAMES = {opcode: name for opcode, (name, _) in OPCODES.items()}

# Opcodes that open a structured block terminated by END
BLOCK_TYPE = {BLOCK, LOOP, IF}
