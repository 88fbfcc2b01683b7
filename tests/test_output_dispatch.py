"""
Tests for the output dispatcher in rdcli/output/__init__.py.
"""
import io
import json

import pytest

from rdcli.config import RdcliConfig
from rdcli.output import ColumnConfig, OutputOptions, output, output_tree, resolve_format, OutputFormat
from rdcli.tree import build_tree

COLUMNS = [ColumnConfig("title", "Title", prominent=True), ColumnConfig("_id", "ID")]


class TtyStringIO(io.StringIO):
    def isatty(self):
        return True


def run(data, columns=COLUMNS, **options):
    stream = io.StringIO()
    output(data, columns, OutputOptions(stream=stream, **options))
    return stream.getvalue()


class TestQuietMode:
    """Test identifier-only output."""

    def test_ids_one_per_line(self):
        assert run([{"_id": 1, "title": "a"}, {"_id": 2, "title": "b"}], quiet=True) == "1\n2\n"

    def test_falls_back_to_id(self):
        assert run([{"id": "x"}, {"_id": 5, "id": "ignored"}], quiet=True) == "x\n5\n"

    def test_records_without_id_are_skipped(self):
        assert run([{"title": "no id"}, {"_id": 3}], quiet=True) == "3\n"

    def test_single_record(self):
        assert run({"_id": 9, "title": "one"}, quiet=True) == "9\n"

    def test_quiet_ignores_format(self):
        assert run([{"_id": 1}], quiet=True, format="table") == "1\n"


class TestFormatSelection:
    """Test renderer dispatch."""

    def test_json(self):
        out = run([{"_id": 1, "title": "a"}], format="json")
        assert json.loads(out) == [{"_id": 1, "title": "a"}]

    def test_tsv(self):
        assert run([{"_id": 1, "title": "a"}], format="tsv") == "Title\tID\na\t1\n"

    def test_table(self):
        out = run([{"_id": 1, "title": "a"}], format="table")
        assert "Title" in out and "┌" in out

    def test_plain(self):
        assert run([{"_id": 1, "title": "a"}], format="plain") == "a\n\n🔖 ID  1\n"

    def test_single_trailing_newline(self):
        out = run([], format="tsv")
        assert out == "Title\tID\n"

    def test_default_is_json_when_not_a_tty(self):
        out = run([{"_id": 1}])
        assert json.loads(out) == [{"_id": 1}]

    def test_default_is_plain_on_a_tty(self):
        stream = TtyStringIO()
        output([{"_id": 1, "title": "a"}], COLUMNS, OutputOptions(stream=stream, no_color=True))
        assert stream.getvalue() == "a\n\n🔖 ID  1\n"

    def test_unknown_format_fails_loudly(self):
        with pytest.raises(ValueError, match="Unknown output format: xml"):
            run([], format="xml")

    def test_resolve_format_enum(self):
        assert resolve_format(OutputOptions(format="tsv")) is OutputFormat.TSV

    def test_machine_formats_never_styled(self):
        stream = TtyStringIO()
        output([{"_id": 1, "title": "a"}], COLUMNS, OutputOptions(format="tsv", stream=stream))
        assert "\x1b[" not in stream.getvalue()


class TestOptionsFromConfig:
    def test_copies_display_settings(self):
        config = RdcliConfig(default_format="tsv", no_color=True, verbose=True)
        options = OutputOptions.from_config(config, quiet=True)
        assert options.format == "tsv"
        assert options.no_color is True
        assert options.verbose is True
        assert options.quiet is True


class TestOutputTree:
    """Test tree dispatch."""

    @pytest.fixture
    def forest(self, sample_collections):
        return build_tree(*sample_collections)

    def run_tree(self, forest, **options):
        stream = io.StringIO()
        output_tree(forest, OutputOptions(stream=stream, **options))
        return stream.getvalue()

    def test_quiet_ids_in_tree_order(self, forest):
        assert self.run_tree(forest, quiet=True) == "99\n2\n1\n12\n11\n111\n"

    def test_json_rows(self, forest):
        rows = json.loads(self.run_tree(forest, format="json"))
        assert rows[3] == {"title": "Meetings", "_id": 12, "count": 2, "parentId": 1, "depth": 1}

    def test_tsv_rows(self, forest):
        lines = self.run_tree(forest, format="tsv").rstrip("\n").split("\n")
        assert lines[0] == "title\t_id\tcount\tparentId\tdepth"
        assert len(lines) == 7

    def test_plain_tree(self, forest):
        out = self.run_tree(forest, format="plain")
        assert out.startswith("📂 Lost (3 items)\n")
        assert "    └── 📂 Archive (0 items)\n" in out

    def test_table_tree(self, forest):
        out = self.run_tree(forest, format="table")
        assert "Collection" in out
        assert "├── 📂 Meetings" in out

    def test_unknown_format_fails_loudly(self, forest):
        with pytest.raises(ValueError):
            self.run_tree(forest, format="yaml")
