"""Tests for decoding modules on several threads at once."""

from concurrent.futures import ThreadPoolExecutor

from wasm_decoder import Decoder, decode_module
from wasm_decoder.stream import MemoryStream
from wasm_decoder.types import CustomSection, FunctionIndex

from helpers import code_entry, module, name, section, sleb, uleb, vec


def fixture(n: int) -> bytes:
    """A distinct module per ``n``: n functions, an export and a custom section."""
    return module(
        section(1, vec([b"\x60\x00\x01\x7f"])),
        section(3, vec([b"\x00"] * n)),
        section(7, vec([name(f"f{n}") + b"\x00" + uleb(n - 1)])),
        section(10, vec([code_entry(b"\x41" + sleb(i) + b"\x0b") for i in range(n)])),
        section(0, name(f"custom{n}") + bytes([n])),
    )


def check(n: int, module_) -> None:
    functions = module_.functions()
    assert len(functions) == n
    assert [f.body.instructions[0].arguments for f in functions] == list(range(n))
    (export,) = module_.exports
    assert export.name == f"f{n}"
    assert export.description == FunctionIndex(n - 1)
    assert module_.section(CustomSection).contents == bytes([n])


class TestConcurrentDecoding:
    """Test decoding modules from several threads at once."""

    def test_parallel_decodes_are_independent(self):
        fixtures = {n: fixture(n) for n in range(1, 41)}
        jobs = [n for n in fixtures for _ in range(5)]

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda n: (n, decode_module(fixtures[n])), jobs))

        assert len(results) == len(jobs)
        for n, module_ in results:
            check(n, module_)

    def test_shared_decoder_instance(self):
        decoder = Decoder()
        fixtures = {n: fixture(n) for n in range(1, 21)}

        def decode(n):
            return n, decoder.parse_module(MemoryStream(fixtures[n]))

        with ThreadPoolExecutor(max_workers=4) as executor:
            for n, module_ in executor.map(decode, list(fixtures) * 3):
                check(n, module_)
