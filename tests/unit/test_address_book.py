"""Unit tests for address book persistence."""

import json
from pathlib import Path

import pytest
from eth_utils import to_checksum_address

from pearl_deployments.address_book import (
    InMemoryAddressBook,
    JsonAddressBook,
    load_address_book,
    save_address_book,
)
from pearl_deployments.exceptions import (
    AddressConflictError,
    CorruptedFileError,
    InvalidInputKindError,
)


FACTORY_ADDRESS = to_checksum_address("0x1f98431c8ad98523631ae4a59f267346ea31f984")
ROUTER = to_checksum_address("0xe592427a0aece92de3edee1f18e0157c05861564")
QUOTER = to_checksum_address("0x61ffe014ba17989e743c5f6cb21bf9697530b21e")


class TestLoadAddressBook:
    """Test the load_address_book function."""

    def test_loads_existing_file(self, address_book_file: Path):
        book = load_address_book(address_book_file)
        assert book == {"PearlV2Factory": FACTORY_ADDRESS}

    def test_missing_file_is_empty(self, tmp_path: Path):
        assert load_address_book(tmp_path / "addresses.nowhere.json") == {}

    def test_corrupted_file_raises(self, tmp_path: Path):
        """Test that a damaged book is not mistaken for an empty one."""
        corrupted = tmp_path / "addresses.hardhat.json"
        corrupted.write_text("{ invalid json")
        with pytest.raises(CorruptedFileError, match="corrupted"):
            load_address_book(corrupted)


class TestSaveAddressBook:
    """Test the save_address_book function."""

    def test_saves_to_file(self, tmp_path: Path):
        path = tmp_path / "addresses.hardhat.json"
        save_address_book({"SwapRouter": ROUTER}, path)
        with open(path) as f:
            assert json.load(f) == {"SwapRouter": ROUTER}

    def test_creates_parent_directories(self, tmp_path: Path):
        path = tmp_path / "level1" / "level2" / "addresses.hardhat.json"
        save_address_book({}, path)
        assert path.exists()

    def test_leaves_no_temp_file(self, tmp_path: Path):
        path = tmp_path / "addresses.hardhat.json"
        save_address_book({"SwapRouter": ROUTER}, path)
        assert [p.name for p in tmp_path.iterdir()] == ["addresses.hardhat.json"]


class TestInMemoryAddressBook:
    """Test the InMemoryAddressBook class."""

    def test_record_and_get(self):
        book = InMemoryAddressBook("hardhat")
        book.record("SwapRouter", ROUTER.lower())
        assert book.get("SwapRouter") == ROUTER
        assert "SwapRouter" in book
        assert len(book) == 1

    def test_record_same_address_is_noop(self):
        book = InMemoryAddressBook("hardhat", {"SwapRouter": ROUTER})
        assert book.record("SwapRouter", ROUTER.lower()) == ROUTER
        assert book.as_dict() == {"SwapRouter": ROUTER}

    def test_record_different_address_raises(self):
        """Test that an entry is never silently overwritten."""
        book = InMemoryAddressBook("hardhat", {"SwapRouter": ROUTER})
        with pytest.raises(AddressConflictError):
            book.record("SwapRouter", QUOTER)
        assert book.get("SwapRouter") == ROUTER

    def test_record_invalid_address(self):
        book = InMemoryAddressBook("hardhat")
        with pytest.raises(InvalidInputKindError):
            book.record("SwapRouter", "0xnope")
        assert "SwapRouter" not in book

    def test_forget(self):
        book = InMemoryAddressBook("hardhat", {"SwapRouter": ROUTER})
        assert book.forget("SwapRouter") is True
        assert book.forget("SwapRouter") is False
        assert book.get("SwapRouter") is None

    def test_clear(self):
        book = InMemoryAddressBook("hardhat", {"SwapRouter": ROUTER, "QuoterV2": QUOTER})
        book.clear()
        assert len(book) == 0

    def test_as_dict_is_a_copy(self):
        book = InMemoryAddressBook("hardhat", {"SwapRouter": ROUTER})
        book.as_dict()["QuoterV2"] = QUOTER
        assert "QuoterV2" not in book


class TestJsonAddressBook:
    """Test the JsonAddressBook class."""

    def test_reads_existing_file(self, address_book_file: Path):
        book = JsonAddressBook("hardhat", address_book_file)
        assert "PearlV2Factory" in book

    def test_record_persists_immediately(self, address_book_file: Path):
        book = JsonAddressBook("hardhat", address_book_file)
        book.record("SwapRouter", ROUTER)

        with open(address_book_file) as f:
            on_disk = json.load(f)
        assert on_disk["SwapRouter"] == ROUTER
        assert "PearlV2Factory" in on_disk

    def test_missing_file_starts_empty(self, tmp_path: Path):
        book = JsonAddressBook("mumbai", tmp_path / "addresses.mumbai.json")
        assert len(book) == 0
        assert not (tmp_path / "addresses.mumbai.json").exists()

    def test_forget_persists(self, address_book_file: Path):
        book = JsonAddressBook("hardhat", address_book_file)
        book.forget("PearlV2Factory")
        assert load_address_book(address_book_file) == {}

    def test_for_network_uses_network_file_name(self, tmp_path: Path):
        book = JsonAddressBook.for_network("holesky", tmp_path)
        book.record("QuoterV2", QUOTER)
        assert (tmp_path / "addresses.holesky.json").exists()

    def test_reload_sees_previous_run(self, tmp_path: Path):
        first = JsonAddressBook.for_network("hardhat", tmp_path)
        first.record("SwapRouter", ROUTER)

        second = JsonAddressBook.for_network("hardhat", tmp_path)
        assert second.get("SwapRouter") == ROUTER
