import io

from twig.output import LINE_WIDTH, FatalError, LineOutput


def test_short_pieces_share_a_line():
    stream = io.StringIO()
    out = LineOutput(stream)
    out.write("abc")
    out.write("def\n")
    assert stream.getvalue() == "abcdef\n"
    assert out.column == 0


def test_overrun_starts_new_line():
    stream = io.StringIO()
    out = LineOutput(stream)
    out.write("a" * 70)
    out.write("b" * 10)
    assert stream.getvalue() == "a" * 70 + "\n" + "b" * 10
    assert out.column == 10


def test_exact_fit_does_not_break():
    stream = io.StringIO()
    out = LineOutput(stream)
    out.write("a" * 70)
    out.write("b" * (LINE_WIDTH - 70))
    assert "\n" not in stream.getvalue()
    assert out.column == LINE_WIDTH


def test_long_text_at_line_start_is_not_broken():
    stream = io.StringIO()
    out = LineOutput(stream)
    text = "x" * (LINE_WIDTH * 2)
    out.write(text)
    assert stream.getvalue() == text


def test_column_counts_from_last_newline():
    out = LineOutput(io.StringIO())
    out.write("first\nyy")
    assert out.column == 2


def test_default_stream_is_stdout(capsys):
    out = LineOutput()
    out.write("hello")
    assert capsys.readouterr().out == "hello"


def test_fatal_error_carries_message():
    error = FatalError("can't get \"x\" host entry")
    assert str(error) == "can't get \"x\" host entry"