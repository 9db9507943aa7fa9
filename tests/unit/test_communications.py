"""Unit tests for the file communication store."""

from datetime import date

import pytest

from devbrain.communications import (
    FileCommunicationStore,
    communication_filename,
    format_communication,
    parse_communication,
)
from devbrain.errors import CommunicationStoreError
from devbrain.models import Communication, CommunicationTag


@pytest.fixture
def comm():
    return Communication(
        content="Use JWT tokens\nwith a 15 minute expiry",
        source="Slack",
        contact="John Smith",
        topic="Auth approach",
        date=date(2026, 1, 15),
        tags=[CommunicationTag.DECISION.value],
    )


class TestCommunicationFormat:
    """Test cases for the communication file format."""

    def test_filename(self, comm):
        """Test the generated filename."""
        assert communication_filename(comm) == "2026-01-15-slack-john-smith-auth-approach.md"

    def test_filename_without_date_or_topic(self):
        """Test filenames for sparse communications."""
        assert communication_filename(Communication(content="x", source="email")) == "undated-email.md"

    def test_long_topic_is_truncated(self):
        """Test that topic slugs are capped."""
        name = communication_filename(Communication(content="x", topic="word " * 40, date=date(2026, 1, 1)))
        assert len(name) <= len("2026-01-01-") + 50 + len(".md")

    def test_format_and_parse(self, comm):
        """Test that a formatted communication parses back."""
        content = format_communication(comm)

        assert "**Contact:** John Smith" in content
        assert "## Tags" in content

        parsed = parse_communication(content)

        assert parsed == comm

    def test_parse_bad_date(self):
        """Test that an unparsable date becomes None."""
        parsed = parse_communication("**Date:** soon\n\n## Content\n\nhello\n")

        assert parsed.date is None
        assert parsed.content == "hello"
        assert parsed.tags == []


class TestFileCommunicationStore:
    """Test cases for FileCommunicationStore."""

    def test_add_and_get(self, tmp_path, comm):
        """Test storing and loading a communication."""
        store = FileCommunicationStore(tmp_path)

        path = store.add_communication("TASK-00001", comm)

        assert path == tmp_path / "tickets" / "TASK-00001" / "communications" / communication_filename(comm)
        assert store.get_all_communications("TASK-00001") == [comm]

    def test_name_collisions_get_suffix(self, tmp_path, comm):
        """Test that a second identical communication does not overwrite the first."""
        store = FileCommunicationStore(tmp_path)

        first = store.add_communication("TASK-00001", comm)
        second = store.add_communication("TASK-00001", comm)

        assert first != second
        assert second.name.endswith("-2.md")
        assert len(store.get_all_communications("TASK-00001")) == 2

    def test_missing_directory(self, tmp_path):
        """Test that a task without communications has none."""
        store = FileCommunicationStore(tmp_path)

        assert store.get_all_communications("TASK-00001") == []
        assert not (tmp_path / "tickets").exists()

    def test_ignores_other_files_and_undecodable_files(self, tmp_path, comm):
        """Test that only readable markdown files are loaded."""
        store = FileCommunicationStore(tmp_path)
        store.add_communication("TASK-00001", comm)
        directory = store.communications_dir("TASK-00001")
        (directory / "notes.txt").write_text("ignore me", encoding="utf-8")
        (directory / "0000-broken.md").write_bytes(b"\xff\xfe\x00")

        assert store.get_all_communications("TASK-00001") == [comm]

    def test_sorted_by_filename(self, tmp_path):
        """Test ordering of loaded communications."""
        store = FileCommunicationStore(tmp_path)
        store.add_communication("T", Communication(content="later", source="a", date=date(2026, 2, 1)))
        store.add_communication("T", Communication(content="earlier", source="a", date=date(2026, 1, 1)))

        assert [c.content for c in store.get_all_communications("T")] == ["earlier", "later"]

    def test_archived_task(self, tmp_path, comm):
        """Test that archived tasks resolve to the archive."""
        (tmp_path / "tickets" / "_archived" / "TASK-00002").mkdir(parents=True)
        store = FileCommunicationStore(tmp_path)

        path = store.add_communication("TASK-00002", comm)

        assert "_archived" in path.parts
        assert store.get_all_communications("TASK-00002") == [comm]

    def test_search(self, tmp_path, comm):
        """Test case-insensitive search."""
        store = FileCommunicationStore(tmp_path)
        store.add_communication("TASK-00001", comm)
        store.add_communication("TASK-00001", Communication(content="Unrelated", source="email"))

        assert len(store.search_communications("TASK-00001", "jwt")) == 1
        assert len(store.search_communications("TASK-00001", "2026-01")) == 1
        assert len(store.search_communications("TASK-00001", "EMAIL")) == 1
        assert store.search_communications("TASK-00001", "kafka") == []

    def test_write_failure(self, tmp_path, comm):
        """Test that a blocked directory raises CommunicationStoreError."""
        (tmp_path / "tickets").write_text("not a directory", encoding="utf-8")
        store = FileCommunicationStore(tmp_path)

        with pytest.raises(CommunicationStoreError) as exc_info:
            store.add_communication("TASK-00001", comm)

        assert exc_info.value.task_id == "TASK-00001"
        assert exc_info.value.operation == "adding communication"
