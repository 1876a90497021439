# tests/test_parser.py
"""Test LRC parsing and serialization"""

import pytest

from lyricsync.exceptions import ParseError
from lyricsync.lyrics.models import AttachmentTag, TimeTagAttachment, format_time_tag
from lyricsync.lyrics.parser import load_lrc, parse_lrc, parse_time_tag, save_lrc, serialize


class TestTimeTags:
    """Test time tag conversion"""

    def test_parse_time_tag(self):
        """Test minutes/seconds groups are converted to seconds"""
        assert parse_time_tag("00", "01.000") == 1.0
        assert parse_time_tag("1", "05") == 65.0
        assert parse_time_tag("01", "05.5") == 65.5
        assert parse_time_tag("01", "05:50") == 65.5

    def test_negative_time_clamps_to_zero(self):
        """Test negative time tags never produce negative positions"""
        assert parse_time_tag("-00", "01.00") == 0.0
        assert parse_time_tag("-1", "00") == 0.0

    def test_format_time_tag(self):
        """Test position formatting"""
        assert format_time_tag(0) == "00:00.000"
        assert format_time_tag(65.5) == "01:05.500"
        assert format_time_tag(59.9996) == "01:00.000"
        assert format_time_tag(-3) == "00:00.000"


class TestParseLrc:
    """Test parse_lrc"""

    def test_two_line_document(self):
        """Test the basic two line example"""
        lyrics = parse_lrc("[00:01.000]Hello\n[00:05.500]World")

        assert lyrics is not None
        assert [line.position for line in lyrics] == [1.0, 5.5]
        assert [line.content for line in lyrics] == ["Hello", "World"]

    def test_multiple_time_tags_produce_one_line_each(self):
        """Test a line with N time tags yields N lines sharing the content"""
        lyrics = parse_lrc("[00:30.00][00:12.00][01:02.50]Chorus line")

        assert len(lyrics) == 3
        assert all(line.content == "Chorus line" for line in lyrics)
        assert [line.position for line in lyrics] == [12.0, 30.0, 62.5]

    def test_repeated_tag_on_one_line_counts_once(self):
        """Test duplicate time tags on one line are merged"""
        lyrics = parse_lrc("[00:12.00][00:12.00]Twice")
        assert len(lyrics) == 1

    def test_unsorted_source_is_sorted(self):
        """Test the document is ordered by position, not by source order"""
        lyrics = parse_lrc("[00:05.00]B\n[00:01.00]A\n[00:03.00]Mid")

        assert [line.content for line in lyrics] == ["A", "Mid", "B"]
        assert lyrics.positions == [1.0, 3.0, 5.0]

    def test_tag_variants(self):
        """Test missing milliseconds and missing leading zeros"""
        lyrics = parse_lrc("[1:05]No millis\n[2:3.25]Short\n[00:00.1]Tenth")

        assert [line.position for line in lyrics] == [0.1, 65.0, 123.25]

    def test_id_tags(self, sample_lrc):
        """Test id tag lines fill the document metadata"""
        lyrics = parse_lrc(sample_lrc)

        assert lyrics.title == "Test Song"
        assert lyrics.artist == "Test Artist"
        assert lyrics.album == "Test Album"

    def test_offset_and_length_tags(self):
        """Test the offset (ms) and length id tags"""
        lyrics = parse_lrc("[offset:+500]\n[length:03:20]\n[00:01.00]Line")

        assert lyrics.offset == 0.5
        assert lyrics.length == 200.0

    def test_invalid_offset_is_ignored(self):
        """Test an unparsable offset means no offset"""
        lyrics = parse_lrc("[offset:soon]\n[00:01.00]Line")
        assert lyrics.offset == 0.0

    def test_attachment_lines(self, sample_lrc):
        """Test attachment lines attach to the line with the same timestamp"""
        lyrics = parse_lrc(sample_lrc)
        world = [line for line in lyrics if line.content == "World"][0]
        hello = [line for line in lyrics if line.content == "Hello"][0]

        assert world.translation == "Monde"
        assert hello.translation is None
        assert len(lyrics) == 4

    def test_attachment_before_its_line(self):
        """Test attachment order in the file does not matter"""
        lyrics = parse_lrc("[00:02.00][tr]Salut\n[00:02.00]Hi")
        assert lyrics[0].translation == "Salut"

    def test_time_tag_attachment(self):
        """Test inline word timing attachments are parsed"""
        lyrics = parse_lrc("[00:01.000]Hello you\n[00:01.000][tt]<0,0><500,6><1200>")
        timing = lyrics[0].time_tags

        assert isinstance(timing, TimeTagAttachment)
        assert [tag.index for tag in timing.tags] == [0, 6]
        assert timing.tags[1].time == 0.5
        assert timing.duration == 1.2
        assert timing.index_at(0.7) == 6
        assert str(timing) == "<0,0><500,6><1200>"

    def test_bracketed_content_is_kept(self):
        """Test content starting with a capitalized bracket is not an attachment"""
        lyrics = parse_lrc("[00:01.00][Chorus] la la")
        assert lyrics[0].content == "[Chorus] la la"
        assert lyrics[0].attachments == {}

    def test_malformed_lines_are_ignored(self):
        """Test unrecognized lines are skipped"""
        lyrics = parse_lrc("garbage\n[00:01.00]Valid\n[xx:yy]bad\n\n")

        assert len(lyrics) == 1
        assert lyrics[0].content == "Valid"

    def test_no_lines_returns_none(self):
        """Test text without timed lines yields None"""
        assert parse_lrc("") is None
        assert parse_lrc(None) is None
        assert parse_lrc("[ti:Only tags]\nplain text") is None

    def test_strict_mode_raises(self):
        """Test strict mode reports failures"""
        with pytest.raises(ParseError):
            parse_lrc("plain text", strict=True)
        with pytest.raises(ParseError):
            parse_lrc("", strict=True)

    def test_byte_order_mark(self):
        """Test a leading BOM does not hide the first line"""
        lyrics = parse_lrc("\ufeff[ti:Bom]\n[00:01.00]Line")
        assert lyrics.title == "Bom"

    def test_lines_are_owned_by_document(self):
        """Test every parsed line points back to its document"""
        lyrics = parse_lrc("[00:01.00]A\n[00:02.00]B")
        assert all(line.lyrics is lyrics for line in lyrics)


class TestSerialize:
    """Test LRC export"""

    def test_round_trip_keeps_lines(self, sample_lrc):
        """Test parse(serialize(doc)) reproduces positions and contents"""
        lyrics = parse_lrc(sample_lrc)
        reparsed = parse_lrc(serialize(lyrics))

        original = {(line.position, line.content) for line in lyrics}
        assert {(line.position, line.content) for line in reparsed} == original
        assert reparsed.id_tags == lyrics.id_tags

    def test_round_trip_keeps_attachments(self, sample_lrc):
        """Test translations survive the round trip"""
        reparsed = parse_lrc(serialize(parse_lrc(sample_lrc)))
        world = [line for line in reparsed if line.content == "World"][0]
        assert world.translation == "Monde"

    def test_attachment_lines_follow_their_line(self):
        """Test each attachment is exported under the line's timestamp"""
        lyrics = parse_lrc("[00:05.50]World\n[00:05.50][tr]Monde")
        text = serialize(lyrics)

        assert text == "[00:05.500]World\n[00:05.500][tr]Monde\n"

    def test_id_tags_come_first(self, sample_lrc):
        """Test id tags are written before the lines"""
        lines = serialize(parse_lrc(sample_lrc)).splitlines()
        assert lines[0] == "[ti:Test Song]"
        assert lines[3] == "[00:01.000]Hello"

    def test_save_and_load(self, temp_dir, sample_lrc):
        """Test writing and reading an .lrc file"""
        lyrics = parse_lrc(sample_lrc)
        path = save_lrc(lyrics, temp_dir / "nested" / "song.lrc")

        loaded = load_lrc(path)
        assert loaded.title == "Test Song"
        assert len(loaded) == len(lyrics)
        assert loaded[0].attachments.keys() == lyrics[0].attachments.keys()

    def test_load_missing_file(self, temp_dir):
        """Test unreadable files raise ParseError"""
        with pytest.raises(ParseError):
            load_lrc(temp_dir / "missing.lrc")

    def test_attachment_tag_constants(self):
        """Test well known attachment tags"""
        assert AttachmentTag.TRANSLATION == "tr"
        assert AttachmentTag.TIME_TAG == "tt"
