"""Tests for directory and file node behaviors."""

import errno
import stat
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest

from common.constants import ROOT_INODE
from common.exceptions import NotFoundError, PersistenceError, StoreUnavailableError
from contentstore.client import ContentStoreClient
from contentstore.mapping_registry import MappingRegistry
from tgfs.nodes import FileSystem


class TestDirectoryAttributes:
    def test_root_is_a_directory(self, root):
        attr = root.attr()

        assert attr.inode == ROOT_INODE
        assert stat.S_ISDIR(attr.mode)
        assert attr.nlink == 2


class TestCreateAndLookup:
    def test_lookup_after_create_returns_empty_record(self, root, fs):
        created = root.create("a_1.txt", 0o640, 1000, 1000)

        node = root.lookup("a_1.txt")
        record = fs.catalog.get(node.inode)

        assert node.inode == created.inode
        assert record.name == "a_1.txt"
        assert record.tag == "a"
        assert record.size == 0
        assert record.content_id == ""

    def test_create_sets_regular_file_mode_and_owner(self, root):
        node = root.create("notes.md", 0o600, 1001, 1002)
        attr = node.attr()

        assert stat.S_ISREG(attr.mode)
        assert stat.S_IMODE(attr.mode) == 0o600
        assert attr.uid == 1001
        assert attr.gid == 1002
        assert attr.inode != ROOT_INODE

    def test_create_existing_name_is_rejected(self, root, fs):
        root.create("dup.txt", 0o644, 0, 0)
        root.lookup("dup.txt").write(b"original")

        with pytest.raises(OSError) as exc_info:
            root.create("dup.txt", 0o644, 0, 0)

        assert exc_info.value.errno == errno.EIO
        assert root.lookup("dup.txt").read_all() == b"original"

    def test_lookup_missing_name_is_enoent(self, root):
        root.create("present.txt", 0o644, 0, 0)

        with pytest.raises(OSError) as exc_info:
            root.lookup("present")

        assert exc_info.value.errno == errno.ENOENT

    @pytest.mark.parametrize("name", ["", ".", "..", "a/b", "x" * 256])
    def test_create_invalid_name(self, root, name):
        with pytest.raises(OSError) as exc_info:
            root.create(name, 0o644, 0, 0)

        assert exc_info.value.errno == errno.EIO

    def test_read_dir_all_lists_every_entry(self, root):
        for name in ("a_1", "a_2", "b_1"):
            root.create(name, 0o644, 0, 0)

        names = {entry.name for entry in root.read_dir_all()}

        assert names == {"a_1", "a_2", "b_1"}

    def test_concurrent_creates_keep_every_entry(self, root):
        names = [f"file_{i}.bin" for i in range(32)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda n: root.create(n, 0o644, 0, 0), names))

        listed = [entry.name for entry in root.read_dir_all()]
        assert sorted(listed) == sorted(names)
        assert len({entry.inode for entry in root.read_dir_all()}) == len(names)


class TestReadWrite:
    def test_read_before_write_is_empty(self, root, chat_store):
        node = root.create("empty.txt", 0o644, 0, 0)

        assert node.read(0, 4096) == b""
        assert node.read_all() == b""
        assert chat_store.uploads == []

    @pytest.mark.parametrize("data", [b"", b"x", b"hello world", bytes(range(256)) * 64])
    def test_write_then_read_round_trip(self, root, data):
        node = root.create("blob.bin", 0o644, 0, 0)

        assert node.write(data) == len(data)
        assert node.read(0, len(data)) == data

    def test_read_beyond_end_is_empty(self, root):
        node = root.create("short.txt", 0o644, 0, 0)
        node.write(b"abc")

        assert node.read(3, 10) == b""
        assert node.read(100, 1) == b""

    def test_short_read_returns_remaining_bytes(self, root):
        node = root.create("short.txt", 0o644, 0, 0)
        node.write(b"abcdef")

        assert node.read(4, 100) == b"ef"
        assert node.read(1, 3) == b"bcd"

    def test_write_uploads_with_name_and_tag(self, root, chat_store):
        node = root.create("invoice-2024_03.pdf", 0o644, 0, 0)
        node.write(b"%PDF")

        assert chat_store.uploads == [("invoice-2024_03.pdf", b"%PDF", "invoice_2024")]

    def test_write_updates_size_and_mapping(self, root, fs, registry):
        node = root.create("data.bin", 0o644, 0, 0)
        before = node.attr()

        node.write(b"12345")

        record = fs.catalog.get(node.inode)
        assert node.attr().size == 5
        assert node.attr().mtime >= before.mtime
        assert registry.find(record.content_id) > 0

    def test_rewrite_replaces_and_cleans_up_previous_object(self, root, fs, chat_store, registry):
        node = root.create("doc.txt", 0o644, 0, 0)
        node.write(b"first")
        first_id = fs.catalog.get(node.inode).content_id

        node.write(b"second version")
        second_id = fs.catalog.get(node.inode).content_id

        assert second_id != first_id
        assert node.read_all() == b"second version"
        assert chat_store.live_content_ids() == {second_id}
        with pytest.raises(NotFoundError):
            registry.find(first_id)

    def test_read_updates_access_time(self, root, monkeypatch):
        node = root.create("seen.txt", 0o644, 0, 0)
        node.write(b"abc")
        monkeypatch.setattr("tgfs.nodes.now_ns", lambda: 4_000_000_000_000_000_000)

        assert node.read(0, 3) == b"abc"

        attr = node.attr()
        assert attr.atime == 4_000_000_000_000_000_000
        assert attr.mtime < attr.atime

    def test_write_over_size_limit_is_rejected_before_upload(self, root, chat_store, monkeypatch):
        monkeypatch.setattr("tgfs.nodes.FILE_MAX_SIZE_BYTES", 4)
        node = root.create("huge.bin", 0o644, 0, 0)

        with pytest.raises(OSError) as exc_info:
            node.write(b"12345")

        assert exc_info.value.errno == errno.EIO
        assert chat_store.uploads == []

    def test_attr_of_removed_file_is_enoent(self, root):
        node = root.create("gone.txt", 0o644, 0, 0)
        root.remove("gone.txt")

        with pytest.raises(OSError) as exc_info:
            node.attr()

        assert exc_info.value.errno == errno.ENOENT


class TestWriteFailures:
    def _filesystem(self, catalog, store, registry):
        return FileSystem(catalog, store, registry)

    def test_failed_upload_keeps_previous_content(self, catalog, chat_store, registry):
        fs = self._filesystem(catalog, chat_store, registry)
        node = fs.root().create("keep.txt", 0o644, 0, 0)
        node.write(b"v1")
        previous_id = catalog.get(node.inode).content_id

        chat_store.upload = Mock(side_effect=StoreUnavailableError("bot API down"))

        with pytest.raises(OSError) as exc_info:
            node.write(b"v2")

        assert exc_info.value.errno == errno.EIO
        assert catalog.get(node.inode).content_id == previous_id
        assert node.read_all() == b"v1"

    def test_failed_mapping_save_does_not_advance_content_id(self, catalog, chat_store, registry):
        fs = self._filesystem(catalog, chat_store, registry)
        node = fs.root().create("keep.txt", 0o644, 0, 0)
        node.write(b"v1")
        previous_id = catalog.get(node.inode).content_id

        registry.save = Mock(side_effect=PersistenceError("disk full"))

        with pytest.raises(OSError):
            node.write(b"v2")

        assert catalog.get(node.inode).content_id == previous_id
        assert catalog.get(node.inode).size == 2
        assert registry.find(previous_id) > 0
        assert chat_store.live_content_ids() == {previous_id}

    def test_failed_catalog_commit_discards_upload_and_mapping(self, catalog, chat_store, registry):
        fs = self._filesystem(catalog, chat_store, registry)
        node = fs.root().create("keep.txt", 0o644, 0, 0)
        node.write(b"v1")
        previous_id = catalog.get(node.inode).content_id

        catalog.replace_content = Mock(side_effect=PersistenceError("database is locked"))

        with pytest.raises(OSError):
            node.write(b"v2")

        assert chat_store.live_content_ids() == {previous_id}
        assert len(registry) == 1
        assert registry.find(previous_id) > 0

    def test_write_to_concurrently_removed_file_discards_upload(self, catalog, chat_store, registry):
        fs = self._filesystem(catalog, chat_store, registry)
        node = fs.root().create("race.txt", 0o644, 0, 0)

        real_upload = chat_store.upload

        def upload_then_remove(name, data, tag):
            result = real_upload(name, data, tag)
            catalog.remove(node.inode)
            return result

        chat_store.upload = upload_then_remove

        with pytest.raises(OSError) as exc_info:
            node.write(b"late")

        assert exc_info.value.errno == errno.ENOENT
        assert chat_store.live_content_ids() == set()

    def test_download_failure_is_eio(self, catalog, registry):
        store = Mock(spec=ContentStoreClient)
        store.upload.return_value = ("file-1", 1)
        store.download.side_effect = StoreUnavailableError("timeout")
        fs = self._filesystem(catalog, store, registry)
        node = fs.root().create("x.txt", 0o644, 0, 0)
        node.write(b"abc")

        with pytest.raises(OSError) as exc_info:
            node.read(0, 3)

        assert exc_info.value.errno == errno.EIO


class TestRemove:
    def test_remove_deletes_catalog_entry_and_mapping(self, root, fs, chat_store, registry):
        node = root.create("a_1", 0o644, 0, 0)
        node.write(b"payload")
        content_id = fs.catalog.get(node.inode).content_id

        root.remove("a_1")

        with pytest.raises(OSError) as exc_info:
            root.lookup("a_1")
        assert exc_info.value.errno == errno.ENOENT
        with pytest.raises(NotFoundError):
            registry.find(content_id)
        with pytest.raises(NotFoundError):
            chat_store.delete(content_id)

    def test_remove_invalidates_cached_entry(self, root, invalidator):
        root.create("cached.txt", 0o644, 0, 0)

        root.remove("cached.txt")

        invalidator.invalidate_entry.assert_called_once_with(ROOT_INODE, "cached.txt")

    def test_remove_file_never_written(self, root, chat_store):
        root.create("blank.txt", 0o644, 0, 0)

        root.remove("blank.txt")

        assert [entry.name for entry in root.read_dir_all()] == []

    def test_remove_missing_name_is_enoent(self, root):
        with pytest.raises(OSError) as exc_info:
            root.remove("nothing-here")

        assert exc_info.value.errno == errno.ENOENT

    def test_remove_when_store_is_down_keeps_record(self, catalog, registry):
        store = Mock(spec=ContentStoreClient)
        store.upload.return_value = ("file-1", 1)
        store.delete.side_effect = StoreUnavailableError("bot API down")
        fs = FileSystem(catalog, store, registry)
        root = fs.root()
        root.create("stuck.txt", 0o644, 0, 0).write(b"abc")

        with pytest.raises(OSError) as exc_info:
            root.remove("stuck.txt")

        assert exc_info.value.errno == errno.EIO
        assert root.lookup("stuck.txt") is not None
        assert registry.find("file-1") == 1

    def test_remove_proceeds_when_object_already_gone(self, root, fs, chat_store):
        node = root.create("orphan.txt", 0o644, 0, 0)
        node.write(b"abc")
        chat_store.messages.clear()

        root.remove("orphan.txt")

        assert root.read_dir_all() == []

    def test_remove_cleans_up_content_written_after_lookup(self, root, fs, chat_store, registry):
        node = root.create("busy.txt", 0o644, 0, 0)
        node.write(b"v1")
        stale = fs.catalog.lookup(ROOT_INODE, "busy.txt")
        node.write(b"v2")

        fs.delete_record(stale)

        assert chat_store.live_content_ids() == set()
        assert len(registry) == 0
        assert root.read_dir_all() == []

    def test_invalidation_failure_does_not_fail_remove(self, root, invalidator):
        invalidator.invalidate_entry.side_effect = OSError(errno.ENOENT, "not cached")
        root.create("x.txt", 0o644, 0, 0)

        root.remove("x.txt")

        assert root.read_dir_all() == []


class TestTagGroupRemove:
    def test_remove_tag_group_leaves_other_tags(self, root, fs, chat_store):
        for name in ("a_1", "a_2", "b_1"):
            root.create(name, 0o644, 0, 0).write(name.encode())

        root.remove("#a")

        assert [entry.name for entry in root.read_dir_all()] == ["b_1"]
        assert root.lookup("b_1").read_all() == b"b_1"
        assert len(chat_store.live_content_ids()) == 1

    def test_exact_name_wins_over_tag_group(self, root):
        root.create("#a", 0o644, 0, 0)
        root.create("a_1", 0o644, 0, 0)

        root.remove("#a")

        assert [entry.name for entry in root.read_dir_all()] == ["a_1"]

    def test_unknown_tag_group_is_enoent(self, root):
        root.create("a_1", 0o644, 0, 0)

        with pytest.raises(OSError) as exc_info:
            root.remove("#zzz")

        assert exc_info.value.errno == errno.ENOENT

    def test_bare_prefix_is_not_a_tag_group(self, root):
        with pytest.raises(OSError) as exc_info:
            root.remove("#")

        assert exc_info.value.errno == errno.ENOENT

    def test_tag_group_counts(self, root, fs):
        for name in ("a_1", "a_2", "b_1"):
            root.create(name, 0o644, 0, 0)

        assert fs.tag_groups.counts() == {"a": 2, "b": 1}


class TestMappingRegistryFailuresOnRemove:
    def test_mapping_remove_failure_propagates(self, catalog, chat_store):
        registry = Mock(spec=MappingRegistry)
        registry.find.return_value = 100
        registry.remove.side_effect = PersistenceError("read-only filesystem")
        chat_store.registry = registry
        fs = FileSystem(catalog, chat_store, registry)
        root = fs.root()
        root.create("x.txt", 0o644, 0, 0).write(b"abc")

        with pytest.raises(OSError) as exc_info:
            root.remove("x.txt")

        assert exc_info.value.errno == errno.EIO
