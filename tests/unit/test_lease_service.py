#!/usr/bin/env python3
"""Unit tests for LeaseManager."""

import tempfile
from unittest.mock import patch

import pytest

from splurge_credential_rotator.exceptions import ConcurrentRotationRejectedError
from splurge_credential_rotator.file_manager import FileManager
from splurge_credential_rotator.services.lease_service import LeaseManager


class FakeClock:
    """Settable wall clock."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestLeaseManager:
    """Test per-principal lease acquisition."""

    @pytest.fixture
    def temp_dir(self):
        """Create a temporary directory for testing."""
        with tempfile.TemporaryDirectory() as temp_dir:
            yield temp_dir

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def leases(self, temp_dir, clock):
        """Create a LeaseManager with a 30 second TTL."""
        return LeaseManager(FileManager(temp_dir), ttl=30, clock=clock)

    def test_acquire_and_release(self, leases):
        """Test a basic acquire/release cycle."""
        lease = leases.acquire("svc1")

        assert leases.is_held("svc1")
        leases.release(lease)
        assert not leases.is_held("svc1")

    def test_second_acquire_rejected(self, leases):
        """Test that a live lease excludes other holders."""
        leases.acquire("svc1")

        with pytest.raises(ConcurrentRotationRejectedError):
            leases.acquire("svc1")

    def test_principals_independent(self, leases):
        """Test that leases are per principal."""
        leases.acquire("svc1")

        assert leases.acquire("svc2").principal == "svc2"

    def test_expired_lease_taken_over(self, leases, clock):
        """Test that a crashed holder's lease is taken over after expiry."""
        stale = leases.acquire("svc1")
        clock.now += 31

        fresh = leases.acquire("svc1")

        assert fresh.token != stale.token
        assert leases.is_held("svc1")

    def test_renew_extends_expiry(self, leases, clock):
        """Test that renewal pushes out the expiry."""
        lease = leases.acquire("svc1")
        clock.now += 20
        leases.renew(lease)
        clock.now += 20

        assert lease.expires_at == clock.now + 10
        with pytest.raises(ConcurrentRotationRejectedError):
            leases.acquire("svc1")

    def test_renew_lost_lease(self, leases, clock):
        """Test that renewing a lease taken over by another holder fails."""
        lease = leases.acquire("svc1")
        clock.now += 31
        leases.acquire("svc1")

        with pytest.raises(ConcurrentRotationRejectedError):
            leases.renew(lease)

    def test_release_does_not_remove_new_holder(self, leases, clock):
        """Test that a stale holder's release leaves the new lease alone."""
        stale = leases.acquire("svc1")
        clock.now += 31
        leases.acquire("svc1")

        leases.release(stale)

        assert leases.is_held("svc1")

    def test_hold_context_manager(self, leases):
        """Test the context manager always releases."""
        with pytest.raises(RuntimeError):
            with leases.hold("svc1"):
                assert leases.is_held("svc1")
                raise RuntimeError("boom")

        assert not leases.is_held("svc1")

    def test_corrupt_lease_treated_as_held(self, leases):
        """Test that an unreadable lease file is not broken."""
        leases.acquire("svc1")
        path = leases._file_manager.lease_file_path("svc1")
        path.write_text("{garbage", encoding="utf-8")

        assert leases.is_held("svc1")
        with pytest.raises(ConcurrentRotationRejectedError):
            leases.acquire("svc1")

    def test_renew_after_expiry_counts_as_lost(self, leases, clock):
        """Test that an expired lease is not renewed even if nobody took it over."""
        lease = leases.acquire("svc1")
        clock.now += 30

        with pytest.raises(ConcurrentRotationRejectedError):
            leases.renew(lease)

    def test_expired_takeover_race_grants_one_holder(self, temp_dir, clock):
        """Test that a contender breaking a lease another contender already replaced backs off."""
        crashed = LeaseManager(FileManager(temp_dir), ttl=30, clock=clock)
        first = LeaseManager(FileManager(temp_dir), ttl=30, clock=clock)
        second = LeaseManager(FileManager(temp_dir), ttl=30, clock=clock)
        crashed.acquire("svc1")
        clock.now += 31

        read_expired = first._read
        granted = []

        def read_then_let_second_win(principal):
            holder = read_expired(principal)
            if not granted:
                granted.append(second.acquire(principal))
            return holder

        with patch.object(first, "_read", side_effect=read_then_let_second_win):
            with pytest.raises(ConcurrentRotationRejectedError):
                first.acquire("svc1")

        second.renew(granted[0])
        assert second.is_held("svc1")
        assert second._read("svc1")["token"] == granted[0].token
        leftovers = [p.name for p in second._file_manager.leases_directory.iterdir()]
        assert leftovers == ["svc1.lease"]

    def test_renew_replaces_lease_file_atomically(self, leases, clock):
        """Test that renewal leaves only the lease file behind."""
        lease = leases.acquire("svc1")
        clock.now += 10

        leases.renew(lease)

        assert leases._read("svc1")["expires_at"] == clock.now + 30
        leftovers = [p.name for p in leases._file_manager.leases_directory.iterdir()]
        assert leftovers == ["svc1.lease"]
