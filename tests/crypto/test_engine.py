"""Tests for the local confidential engine and Ed25519 identities."""

from __future__ import annotations

import pytest

from secretline.core.exceptions import ForbiddenError, InvalidInputError, NotFoundError, StoreException
from secretline.core.vault import ConfidentialEngine
from secretline.crypto.engine import LocalConfidentialEngine
from secretline.crypto.identity import DecryptionProof, LocalIdentity, address_from_public_key


class TestLocalConfidentialEngine:
    def test_satisfies_protocol(self):
        assert isinstance(LocalConfidentialEngine(), ConfidentialEngine)

    def test_values_within_domain(self):
        engine = LocalConfidentialEngine(require_proof=False)
        for _ in range(50):
            handle = engine.generate_secret(10, 12)
            engine.grant_decrypt_capability(handle, "0xa")
            assert 10 <= engine.decrypt(handle, "0xa") <= 12

    def test_single_value_domain(self):
        engine = LocalConfidentialEngine(require_proof=False)
        handle = engine.generate_secret(7, 7)
        engine.grant_decrypt_capability(handle, "0xa")
        assert engine.decrypt(handle, "0xa") == 7

    def test_empty_domain(self):
        with pytest.raises(InvalidInputError):
            LocalConfidentialEngine().generate_secret(2, 1)

    def test_handles_are_unique_hex(self):
        engine = LocalConfidentialEngine()
        handles = {engine.generate_secret(1, 2) for _ in range(20)}
        assert len(handles) == 20
        assert all(h.startswith("0x") and len(h) == 66 for h in handles)

    def test_decrypt_with_proof(self, alice):
        engine = LocalConfidentialEngine()
        handle = engine.generate_secret(10_000_000, 99_999_999)
        engine.grant_decrypt_capability(handle, alice.address)
        assert 10_000_000 <= engine.decrypt(handle, alice.address, alice.prove(handle)) <= 99_999_999

    def test_no_capability(self, alice):
        engine = LocalConfidentialEngine()
        handle = engine.generate_secret(1, 9)
        with pytest.raises(ForbiddenError):
            engine.decrypt(handle, alice.address, alice.prove(handle))

    def test_missing_proof(self, alice):
        engine = LocalConfidentialEngine()
        handle = engine.generate_secret(1, 9)
        engine.grant_decrypt_capability(handle, alice.address)
        with pytest.raises(ForbiddenError):
            engine.decrypt(handle, alice.address)

    def test_borrowed_proof_rejected(self, alice, bob):
        """A non-member cannot reuse a member's proof for their own address."""
        engine = LocalConfidentialEngine()
        handle = engine.generate_secret(1, 9)
        engine.grant_decrypt_capability(handle, alice.address)
        with pytest.raises(ForbiddenError):
            engine.decrypt(handle, alice.address, bob.prove(handle))

    def test_proof_bound_to_handle(self, alice):
        engine = LocalConfidentialEngine()
        first = engine.generate_secret(1, 9)
        second = engine.generate_secret(1, 9)
        engine.grant_decrypt_capability(second, alice.address)
        with pytest.raises(ForbiddenError):
            engine.decrypt(second, alice.address, alice.prove(first))

    def test_unknown_handle(self):
        engine = LocalConfidentialEngine()
        with pytest.raises(NotFoundError):
            engine.decrypt("0xmissing", "0xa")
        with pytest.raises(NotFoundError):
            engine.grant_decrypt_capability("0xmissing", "0xa")

    def test_grant_idempotent(self):
        engine = LocalConfidentialEngine()
        handle = engine.generate_secret(1, 9)
        engine.grant_decrypt_capability(handle, "0xa")
        engine.grant_decrypt_capability(handle, "0xa")
        assert engine.to_dict()["secrets"][handle]["capabilities"] == ["0xa"]

    def test_discard_secret(self):
        engine = LocalConfidentialEngine()
        handle = engine.generate_secret(1, 9)
        engine.grant_decrypt_capability(handle, "0xa")
        engine.discard_secret(handle)
        engine.discard_secret(handle)
        assert engine.to_dict()["secrets"] == {}
        with pytest.raises(NotFoundError):
            engine.decrypt(handle, "0xa")

    def test_dict_round_trip(self, alice):
        engine = LocalConfidentialEngine()
        handle = engine.generate_secret(1, 1000)
        engine.grant_decrypt_capability(handle, alice.address)
        value = engine.decrypt(handle, alice.address, alice.prove(handle))
        restored = LocalConfidentialEngine.from_dict(engine.to_dict())
        assert restored.decrypt(handle, alice.address, alice.prove(handle)) == value


class TestMembersShareSecret:
    def test_joiner_decrypts_same_secret(self, coordinator, engine, alice, bob):
        line_id = coordinator.create_line("Shadow Loop", alice.address)
        coordinator.join_line(line_id, bob.address)
        handle = coordinator.get_line(line_id).secret_handle
        assert engine.decrypt(handle, alice.address, alice.prove(handle)) == engine.decrypt(
            handle, bob.address, bob.prove(handle)
        )

    def test_non_member_refused(self, coordinator, engine, alice, carol):
        line_id = coordinator.create_line("Shadow Loop", alice.address)
        handle = coordinator.secret_handle(line_id)
        with pytest.raises(ForbiddenError):
            engine.decrypt(handle, carol.address, carol.prove(handle))


class TestLocalIdentity:
    def test_address_format(self, alice):
        assert alice.address.startswith("0x")
        assert len(alice.address) == 42
        assert alice.address == address_from_public_key(alice.public_key)

    def test_distinct_identities(self, alice, bob):
        assert alice.address != bob.address

    def test_proof_verifies(self, alice):
        assert alice.prove("0xh").verify("0xh", alice.address)

    def test_tampered_signature(self, alice):
        proof = alice.prove("0xh")
        forged = DecryptionProof(public_key=proof.public_key, signature=bytes(64))
        assert not forged.verify("0xh", alice.address)

    def test_garbage_public_key(self, alice):
        proof = DecryptionProof(public_key=b"short", signature=bytes(64))
        assert not proof.verify("0xh", address_from_public_key(b"short"))

    def test_pem_round_trip(self, alice):
        assert LocalIdentity.from_pem(alice.to_pem()).address == alice.address

    def test_save_and_load(self, alice, tmp_path):
        path = tmp_path / "keys" / "alice.pem"
        alice.save(path)
        assert path.stat().st_mode & 0o777 == 0o600
        assert LocalIdentity.load(path).address == alice.address

    def test_load_or_create(self, tmp_path):
        path = tmp_path / "keys" / "new.pem"
        created = LocalIdentity.load_or_create(path)
        assert path.exists()
        assert LocalIdentity.load_or_create(path).address == created.address

    def test_load_missing(self, tmp_path):
        with pytest.raises(StoreException):
            LocalIdentity.load(tmp_path / "absent.pem")

    def test_invalid_pem(self):
        with pytest.raises(InvalidInputError):
            LocalIdentity.from_pem(b"not a key")
