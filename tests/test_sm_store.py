"""Tests for simfile parsing."""

from fractions import Fraction

import pytest

import sm_store
from chart_models import NoteType


def _positions(measure):
    return [position for position, _row in measure]


def test_four_row_measure_positions(simfile_text_factory):
    simfile = sm_store.parse_simfile(simfile_text_factory(charts=["1000\n0100\n0010\n0001"]))
    measure = simfile.step_charts[0].measures[0]
    assert _positions(measure) == [Fraction(0), Fraction(1, 4), Fraction(1, 2), Fraction(3, 4)]


def test_third_positions_are_exact(simfile_text_factory):
    simfile = sm_store.parse_simfile(simfile_text_factory(charts=["1000\n0000\n0001"]))
    positions = _positions(simfile.step_charts[0].measures[0])
    assert positions == [Fraction(0), Fraction(1, 3), Fraction(2, 3)]
    assert positions[1].denominator == 3


def test_positions_are_reduced(simfile_text_factory):
    grid = "\n".join(["0000"] * 8)
    simfile = sm_store.parse_simfile(simfile_text_factory(charts=[grid]))
    positions = _positions(simfile.step_charts[0].measures[0])
    assert positions[2] == Fraction(1, 4)
    assert (positions[2].numerator, positions[2].denominator) == (1, 4)


def test_note_symbols_map_to_types(simfile_text_factory):
    simfile = sm_store.parse_simfile(simfile_text_factory(charts=["1234\nMLF0\nK1x0"]))
    rows = [row for _position, row in simfile.step_charts[0].measures[0]]
    assert list(rows[0]) == [
        (NoteType.TAP, 0),
        (NoteType.HOLD, 1),
        (NoteType.HOLD_END, 2),
        (NoteType.ROLL, 3),
    ]
    assert list(rows[1]) == [(NoteType.MINE, 0), (NoteType.LIFT, 1), (NoteType.FAKE, 2)]
    # Unknown symbols are skipped, the column index of known ones is kept.
    assert list(rows[2]) == [(NoteType.TAP, 1)]


def test_measures_split_on_comma_lines(simfile_text_factory):
    simfile = sm_store.parse_simfile(simfile_text_factory(charts=["1000\n0100\n,\n0010\n,\n0001\n0000"]))
    measures = simfile.step_charts[0].measures
    assert [len(measure) for measure in measures] == [2, 1, 2]


def test_empty_measure_keeps_measure_index(simfile_text_factory):
    simfile = sm_store.parse_simfile(simfile_text_factory(charts=["1000\n,\n,\n0001"]))
    measures = simfile.step_charts[0].measures
    assert len(measures) == 3
    assert measures[1] == ()
    assert list(measures[2][0][1]) == [(NoteType.TAP, 3)]


def test_comments_and_blank_lines_are_ignored(simfile_text_factory):
    grid = "// measure 0\n1000\n\n0100  // second row\n,\n0010"
    simfile = sm_store.parse_simfile(simfile_text_factory(charts=[grid]))
    measures = simfile.step_charts[0].measures
    assert [len(measure) for measure in measures] == [2, 1]


def test_offset_is_negated(simfile_text_factory):
    simfile = sm_store.parse_simfile(simfile_text_factory(offset="0.250"))
    assert simfile.metadata.offset == pytest.approx(-0.25)
    assert simfile.metadata.offset_ms() == pytest.approx(-250.0)


@pytest.mark.parametrize("offset_text", ["abc", "", "1.0.0", "nan"])
def test_malformed_offset_is_unset(simfile_text_factory, offset_text):
    simfile = sm_store.parse_simfile(simfile_text_factory(offset=offset_text))
    assert simfile.metadata.offset is None
    assert simfile.metadata.offset_ms() == 0.0


def test_unterminated_offset_is_unset():
    simfile = sm_store.parse_simfile("#OFFSET:0.5\n")
    assert simfile.metadata.offset is None


def test_bpms_pairs_and_display_bpm(simfile_text_factory):
    simfile = sm_store.parse_simfile(simfile_text_factory(bpms="0.000=120.000,\n2.000=240.000,\n4.5=90"))
    assert simfile.metadata.bpms == ((0.0, 120.0), (2.0, 240.0), (4.5, 90.0))
    assert simfile.metadata.bpm == 90.0


@pytest.mark.parametrize("bpms_text", ["", "0=120,", "0:120", "0=abc", "0=120,1=0", "0=-10"])
def test_malformed_bpms_is_empty(simfile_text_factory, bpms_text):
    simfile = sm_store.parse_simfile(simfile_text_factory(bpms=bpms_text))
    assert simfile.metadata.bpms == ()
    assert simfile.metadata.bpm is None


def test_unknown_tags_and_title(simfile_text_factory):
    text = "#ARTIST:Someone;\n#BANNER:banner.png;\n" + simfile_text_factory(title="My Song", charts=["1000"])
    simfile = sm_store.parse_simfile(text)
    assert simfile.metadata.title == "My Song"
    assert len(simfile.step_charts) == 1


def test_missing_tags_leave_defaults():
    simfile = sm_store.parse_simfile("no tags here at all")
    assert simfile.metadata.title is None
    assert simfile.metadata.offset is None
    assert simfile.metadata.bpms == ()
    assert simfile.step_charts == ()


def test_multiple_note_blocks_with_headers(simfile_text_factory):
    easy = simfile_text_factory(charts=["1000"], difficulty="Easy")
    hard = simfile_text_factory(charts=["1111\n,\n1111"], difficulty="Hard")
    hard_notes = hard[hard.index("#NOTES"):]
    simfile = sm_store.parse_simfile(easy + hard_notes)

    assert [chart.difficulty for chart in simfile.charts()] == ["easy", "hard"]
    assert simfile.step_charts[0].steps_type == "dance-single"
    assert simfile.step_charts[0].description is None
    assert simfile.step_charts[0].meter == 1
    assert simfile.step_charts[1].note_count() == 8


def test_load_simfile_reads_utf8(tmp_path, simfile_text_factory):
    simfile_path = tmp_path / "song.sm"
    simfile_path.write_text(simfile_text_factory(title="Café", charts=["0100"]), encoding="utf-8")
    simfile = sm_store.load_simfile(simfile_path)
    assert simfile.metadata.title == "Café"


def test_load_simfile_missing_file_raises(tmp_path):
    with pytest.raises(sm_store.SimfileReadError):
        sm_store.load_simfile(tmp_path / "missing.sm")


def test_load_simfile_invalid_utf8_raises(tmp_path):
    simfile_path = tmp_path / "broken.sm"
    simfile_path.write_bytes(b"#TITLE:\xff\xfe;")
    with pytest.raises(sm_store.SimfileReadError):
        sm_store.load_simfile(simfile_path)


def test_normalize_difficulty():
    assert sm_store.normalize_difficulty("  Challenge ") == "challenge"
    with pytest.raises(ValueError):
        sm_store.normalize_difficulty("impossible")


def test_title_is_kept_verbatim():
    simfile = sm_store.parse_simfile("#TITLE:  Spaced Title ;\n#OFFSET:0;")
    assert simfile.metadata.title == "  Spaced Title "
