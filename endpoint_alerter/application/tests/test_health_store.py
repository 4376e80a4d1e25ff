"""
Tests for health store module.
"""

import tempfile
import threading
from pathlib import Path

import pytest

from endpoint_alerter.health import store
from endpoint_alerter.health.checks import fingerprint
from endpoint_alerter.health.models import Status


class TestResultStore:
    """Tests for ResultStore."""

    @pytest.fixture
    def temp_dir(self):
        """Create temporary directory for tests."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    @pytest.fixture
    def result_store(self, temp_dir):
        return store.ResultStore(str(temp_dir / "results.db"))

    def test_get_missing_is_unknown(self, result_store):
        """Test missing key returns UNKNOWN instead of raising."""
        assert result_store.get(fingerprint("GET https://x")) is Status.UNKNOWN

    def test_put_and_get(self, result_store):
        """Test a written status is read back."""
        key = fingerprint("GET https://x")
        result_store.put(key, Status.FAIL)
        assert result_store.get(key) is Status.FAIL

        result_store.put(key, Status.PASS)
        assert result_store.get(key) is Status.PASS

    def test_put_unknown_rejected(self, result_store):
        """Test UNKNOWN cannot be persisted."""
        with pytest.raises(ValueError):
            result_store.put(fingerprint("GET https://x"), Status.UNKNOWN)

    def test_survives_reopen(self, temp_dir):
        """Test a new store on the same file sees earlier writes."""
        key = fingerprint("GET https://x")
        store.ResultStore(str(temp_dir / "results.db")).put(key, Status.FAIL)

        reopened = store.ResultStore(str(temp_dir / "results.db"))
        assert reopened.get(key) is Status.FAIL

    def test_keys_are_independent(self, result_store):
        """Test entries for different fingerprints do not interfere."""
        result_store.put(fingerprint("GET https://a"), Status.FAIL)
        assert result_store.get(fingerprint("GET https://b")) is Status.UNKNOWN

    def test_creates_parent_directory(self, temp_dir):
        """Test the database directory is created on first use."""
        db_path = temp_dir / "nested" / "state" / "results.db"
        store.ResultStore(str(db_path)).put(fingerprint("GET https://x"), Status.FAIL)
        assert db_path.exists()

    def test_compare_and_set_writes(self, result_store):
        """Test decide's answer is stored and the old status returned."""
        key = fingerprint("GET https://x")
        previous = result_store.compare_and_set(key, lambda prev: Status.FAIL)
        assert previous is Status.UNKNOWN
        assert result_store.get(key) is Status.FAIL

    def test_compare_and_set_none_leaves_entry(self, result_store):
        """Test returning None from decide writes nothing."""
        key = fingerprint("GET https://x")
        result_store.put(key, Status.FAIL)

        seen = []
        previous = result_store.compare_and_set(key, lambda prev: seen.append(prev))

        assert previous is Status.FAIL
        assert seen == [Status.FAIL]
        assert result_store.get(key) is Status.FAIL

    def test_compare_and_set_rolls_back_on_error(self, result_store):
        """Test an exception in decide leaves the stored value untouched."""
        key = fingerprint("GET https://x")
        result_store.put(key, Status.PASS)

        def explode(prev):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            result_store.compare_and_set(key, explode)
        assert result_store.get(key) is Status.PASS

    def test_compare_and_set_serialized(self, result_store):
        """Test concurrent read-compare-write on one key never loses updates."""
        key = fingerprint("GET https://x")
        writes = []
        lock = threading.Lock()

        def decide(prev):
            if prev is Status.FAIL:
                return None
            with lock:
                writes.append(prev)
            return Status.FAIL

        threads = [
            threading.Thread(target=result_store.compare_and_set, args=(key, decide))
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert writes == [Status.UNKNOWN]
        assert result_store.get(key) is Status.FAIL

    def test_unopenable_path_raises_store_error(self, temp_dir):
        """Test a directory in place of the database raises StoreError."""
        bad = temp_dir / "is_a_dir"
        bad.mkdir()
        with pytest.raises(store.StoreError):
            store.ResultStore(str(bad)).get(fingerprint("GET https://x"))

    def test_many_probes_distinct_entries(self, result_store):
        """Test 200 URLs produce 200 independent entries."""
        identities = [f"GET https://example.com/item/{i}" for i in range(200)]
        for identity in identities[::2]:
            result_store.put(fingerprint(identity), Status.FAIL)

        assert all(
            result_store.get(fingerprint(identity)) is Status.FAIL
            for identity in identities[::2]
        )
        assert all(
            result_store.get(fingerprint(identity)) is Status.UNKNOWN
            for identity in identities[1::2]
        )


class TestStatusToken:
    """Tests for Status.from_token."""

    def test_known_tokens(self):
        """Test persisted tokens map back to statuses."""
        assert Status.from_token("pass") is Status.PASS
        assert Status.from_token("fail") is Status.FAIL

    def test_absent_and_garbage(self):
        """Test absent or unexpected tokens are UNKNOWN."""
        assert Status.from_token(None) is Status.UNKNOWN
        assert Status.from_token("maybe") is Status.UNKNOWN
