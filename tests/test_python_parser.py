import pytest

from databridge.python_parser import PythonChunk, parse_python

SAMPLE = '''import os


def alpha(x):
    return x + 1


async def beta():
    await something()


class Gamma:
    def method(self):
        def inner():
            pass
        return inner


@decorator
def delta():
    pass


VALUE = alpha(1)
'''


def test_top_level_symbols_in_order():
    chunks = parse_python(SAMPLE)
    assert [(c.symbol, c.symbol_type) for c in chunks] == [
        ("alpha", "func"),
        ("beta", "func"),
        ("Gamma", "class"),
    ]


def test_function_content_is_exact_source():
    alpha = parse_python(SAMPLE)[0]
    assert alpha == PythonChunk("alpha", "func", "def alpha(x):\n    return x + 1")


def test_async_function_content_includes_async_keyword():
    beta = parse_python(SAMPLE)[1]
    assert beta.content == "async def beta():\n    await something()"


def test_class_content_includes_methods():
    gamma = parse_python(SAMPLE)[2]
    assert gamma.content.startswith("class Gamma:")
    assert "def method(self):" in gamma.content
    assert gamma.content.endswith("return inner")


def test_nested_and_decorated_definitions_are_not_chunked():
    symbols = {c.symbol for c in parse_python(SAMPLE)}
    assert symbols.isdisjoint({"method", "inner", "delta"})


def test_module_without_definitions():
    assert parse_python("x = 1\nprint(x)\n") == []
    assert parse_python("") == []


def test_every_chunk_is_a_substring_of_source():
    chunks = parse_python(SAMPLE)
    assert all(chunk.content in SAMPLE for chunk in chunks)


def test_syntax_error_raises():
    with pytest.raises(SyntaxError):
        parse_python("def broken(:\n    pass\n")