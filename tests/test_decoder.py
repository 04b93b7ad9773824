"""Tests for the WebAssembly binary decoder."""

import io
import logging

import pytest
from wasm_decoder import Decoder, DecoderConfig, decode_module
from wasm_decoder.errors import DecodeError, ParseErrorKind
from wasm_decoder.stream import MemoryStream
from wasm_decoder.types import CodeSection, FunctionIndex, TypeSection, ValueType

from helpers import HEADER, code_entry, module, name, section, vec

ADD_TYPE = b"\x60\x02\x7f\x7f\x01\x7f"
ADD_BODY = b"\x20\x00\x20\x01\x6a\x0b"

# (func (export "add") (param i32 i32) (result i32) local.get 0 local.get 1 i32.add)
ADD_MODULE = bytes(
    [
        0x00,
        0x61,
        0x73,
        0x6D,  # magic
        0x01,
        0x00,
        0x00,
        0x00,  # version
        # Type section
        0x01,
        0x07,
        0x01,
        0x60,
        0x02,
        0x7F,
        0x7F,
        0x01,
        0x7F,
        # Function section
        0x03,
        0x02,
        0x01,
        0x00,
        # Export section
        0x07,  # section id: export
        0x07,  # section size
        0x01,  # 1 export
        0x03,  # name length: 3
        0x61,
        0x64,
        0x64,  # "add"
        0x00,  # export kind: func
        0x00,  # func index: 0
        # Code section
        0x0A,
        0x09,
        0x01,
        0x07,
        0x00,
        0x20,
        0x00,
        0x20,
        0x01,
        0x6A,
        0x0B,
    ]
)


def decode_error(data) -> DecodeError:
    with pytest.raises(DecodeError) as excinfo:
        decode_module(data)
    return excinfo.value


class TestModuleHeader:
    """Test magic and version checks."""

    def test_decode_minimal_module(self):
        module_ = decode_module(HEADER)
        assert module_.sections == ()
        assert module_.types == ()
        assert module_.functions() == ()

    def test_decode_invalid_magic(self):
        error = decode_error(b"\x00asn\x01\x00\x00\x00")
        assert error.kind is ParseErrorKind.INVALID_MODULE_MAGIC
        assert "magic" in str(error)

    def test_decode_invalid_version(self):
        error = decode_error(b"\x00asm\x02\x00\x00\x00")
        assert error.kind is ParseErrorKind.INVALID_MODULE_VERSION
        assert "version" in str(error)

    def test_truncated_magic(self):
        assert decode_error(b"\x00as").kind is ParseErrorKind.UNEXPECTED_EOF

    def test_truncated_version(self):
        assert decode_error(b"\x00asm\x01\x00").kind is ParseErrorKind.UNEXPECTED_EOF

    def test_empty_input(self):
        assert decode_error(b"").kind is ParseErrorKind.UNEXPECTED_EOF


class TestDecodeModule:
    """Test decoding complete modules."""

    def test_decode_type_section(self):
        module_ = decode_module(module(section(1, vec([ADD_TYPE]))))
        assert len(module_.types) == 1
        assert module_.types[0].parameters == (ValueType.I32, ValueType.I32)
        assert module_.types[0].results == (ValueType.I32,)

    def test_decode_function_and_code_sections(self):
        module_ = decode_module(
            module(
                section(1, vec([ADD_TYPE])),
                section(3, vec([b"\x00"])),
                section(10, vec([code_entry(ADD_BODY)])),
            )
        )
        (func,) = module_.functions()
        assert func.type.value == 0
        assert func.locals == ()
        assert len(func.body.instructions) == 3  # local.get, local.get, i32.add

    def test_decode_export_section(self):
        module_ = decode_module(ADD_MODULE)
        assert len(module_.exports) == 1
        export = module_.exports[0]
        assert export.name == "add"
        assert export.description == FunctionIndex(0)

    def test_sections_keep_stream_order(self):
        module_ = decode_module(ADD_MODULE)
        assert [s.section_id for s in module_.sections] == [1, 3, 7, 10]

    def test_section_order_is_not_enforced(self):
        data = module(
            section(10, vec([code_entry(ADD_BODY)])),
            section(1, vec([ADD_TYPE])),
            section(1, vec([])),
        )
        module_ = decode_module(data)
        assert isinstance(module_.sections[0], CodeSection)
        assert len(module_.sections_of(TypeSection)) == 2


class TestSources:
    """Test the input types decode_module accepts."""

    def test_bytearray(self):
        assert len(decode_module(bytearray(ADD_MODULE)).sections) == 4

    def test_file_object(self):
        assert len(decode_module(io.BytesIO(ADD_MODULE)).sections) == 4

    def test_path(self, tmp_path):
        path = tmp_path / "add.wasm"
        path.write_bytes(ADD_MODULE)
        assert len(decode_module(path).sections) == 4

    def test_stream(self):
        stream = MemoryStream(ADD_MODULE)
        assert len(decode_module(stream).sections) == 4
        assert stream.unreliable_eof()


class TestErrors:
    """Test error kinds and offsets for malformed modules."""

    def test_every_truncation_fails(self):
        full = module(section(1, vec([ADD_TYPE])))
        for cut in range(len(full)):
            if cut == len(HEADER):
                # Header alone is a valid, empty module
                continue
            error = decode_error(full[:cut])
            assert error.kind is ParseErrorKind.UNEXPECTED_EOF, cut

    def test_truncation_inside_last_section(self):
        code_start = ADD_MODULE.index(b"\x0a\x09")
        for cut in range(code_start + 1, len(ADD_MODULE)):
            with pytest.raises(DecodeError):
                decode_module(ADD_MODULE[:cut])

    def test_error_offset(self):
        error = decode_error(b"\x00asn\x01\x00\x00\x00")
        assert error.offset == 4
        assert "offset 4" in str(error)

    def test_unknown_section_offset(self):
        error = decode_error(HEADER + b"\x0e\x00")
        assert error.kind is ParseErrorKind.INVALID_TAG
        assert error.offset == 9

    def test_failure_in_later_section_discards_everything(self):
        bad_import = name("a") + name("b") + b"\x09"
        data = module(section(1, vec([ADD_TYPE])), section(2, vec([bad_import])))
        assert decode_error(data).kind is ParseErrorKind.INVALID_TAG

    def test_custom_config(self):
        data = module(section(1, vec([ADD_TYPE, ADD_TYPE, ADD_TYPE])))
        decoder = Decoder(DecoderConfig(max_vector_length=2))
        with pytest.raises(DecodeError) as excinfo:
            decoder.parse_module(MemoryStream(data))
        assert excinfo.value.kind is ParseErrorKind.HUGE_ALLOCATION_REQUESTED

    def test_negative_config_rejected(self):
        with pytest.raises(ValueError):
            DecoderConfig(max_vector_length=-1)


class TestLogging:
    """Test decoder log output."""

    def test_sections_are_logged(self, caplog):
        caplog.set_level(logging.DEBUG, logger="wasm_decoder")
        decode_module(ADD_MODULE)
        messages = [record.getMessage() for record in caplog.records]
        assert "Decoding section 1 (7 bytes) at offset 10" in messages
        assert "Decoded module with 4 sections" in messages
