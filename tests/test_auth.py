import unittest

from karma.auth import Ed25519Gate, InMemoryNonceRegistry
from karma.signing import (
    SignedRequest,
    b64d,
    b64e,
    generate_keypair,
    identity_of,
    sign_create,
    sign_interact,
    sign_payload,
)

NOW = 1_700_000_000


class TestEd25519Gate(unittest.TestCase):

    def setUp(self):
        self.identity, self.key = generate_keypair()
        self.gate = Ed25519Gate()

    def test_valid_proof_accepted(self):
        proof = sign_create(self.key, issued_at=NOW)
        self.assertTrue(self.gate.verify(self.identity, proof, NOW))

    def test_identity_is_public_key(self):
        self.assertEqual(identity_of(self.key), self.identity)
        self.assertEqual(len(b64d(self.identity)), 32)
        self.assertNotIn("/", self.identity)
        self.assertNotIn("+", self.identity)

    def test_missing_proof_rejected(self):
        self.assertFalse(self.gate.verify(self.identity, None, NOW))

    def test_other_signer_rejected(self):
        other, other_key = generate_keypair()
        proof = sign_create(other_key, issued_at=NOW)
        self.assertFalse(self.gate.verify(self.identity, proof, NOW))

    def test_claimed_authority_with_foreign_signature_rejected(self):
        _, other_key = generate_keypair()
        payload = {"op": "create", "authority": self.identity, "issued_at": NOW, "nonce": "n" * 32}
        forged = sign_payload(other_key, payload)
        self.assertFalse(self.gate.verify(self.identity, forged, NOW))

    def test_tampered_payload_rejected(self):
        _, target_key = generate_keypair()
        target = identity_of(target_key)
        proof = sign_interact(self.key, target, "praise", issued_at=NOW)
        payload = dict(proof.payload, direction="accuse")
        tampered = SignedRequest(payload=payload, sig_b64=proof.sig_b64)
        self.assertFalse(self.gate.verify(self.identity, tampered, NOW))

    def test_garbage_signature_rejected(self):
        proof = sign_create(self.key, issued_at=NOW)
        for sig in ("not base64!", b64e(b"short"), ""):
            bad = SignedRequest(payload=proof.payload, sig_b64=sig)
            self.assertFalse(self.gate.verify(self.identity, bad, NOW))

    def test_stale_proof_rejected(self):
        proof = sign_create(self.key, issued_at=NOW - 301)
        self.assertFalse(self.gate.verify(self.identity, proof, NOW))

    def test_freshness_boundary_accepted(self):
        proof = sign_create(self.key, issued_at=NOW - 300)
        self.assertTrue(self.gate.verify(self.identity, proof, NOW))

    def test_future_proof_rejected_beyond_skew(self):
        self.assertTrue(self.gate.verify(self.identity, sign_create(self.key, issued_at=NOW + 30), NOW))
        self.assertFalse(self.gate.verify(self.identity, sign_create(self.key, issued_at=NOW + 31), NOW))

    def test_missing_issued_at_rejected(self):
        payload = {"op": "create", "authority": self.identity, "nonce": "abcdefgh"}
        self.assertFalse(self.gate.verify(self.identity, sign_payload(self.key, payload), NOW))

    def test_non_integer_issued_at_rejected(self):
        for issued_at in (float("inf"), float("nan"), 1.5, "1700000000", True, None):
            payload = {"op": "create", "authority": self.identity, "issued_at": issued_at, "nonce": "abcdefgh"}
            self.assertFalse(self.gate.verify(self.identity, sign_payload(self.key, payload), NOW))

    def test_missing_nonce_rejected(self):
        payload = {"op": "create", "authority": self.identity, "issued_at": NOW}
        self.assertFalse(self.gate.verify(self.identity, sign_payload(self.key, payload), NOW))

    def test_replay_rejected(self):
        proof = sign_create(self.key, issued_at=NOW)
        self.assertTrue(self.gate.verify(self.identity, proof, NOW))
        self.assertFalse(self.gate.verify(self.identity, proof, NOW + 1))

    def test_custom_windows(self):
        gate = Ed25519Gate(freshness_seconds=10, max_clock_skew_seconds=0)
        self.assertFalse(gate.verify(self.identity, sign_create(self.key, issued_at=NOW - 11), NOW))
        self.assertFalse(gate.verify(self.identity, sign_create(self.key, issued_at=NOW + 1), NOW))
        self.assertTrue(gate.verify(self.identity, sign_create(self.key, issued_at=NOW - 10), NOW))


class TestInMemoryNonceRegistry(unittest.TestCase):

    def test_single_use(self):
        reg = InMemoryNonceRegistry()
        self.assertTrue(reg.register("abc", expires_at=100, now=0))
        self.assertFalse(reg.register("abc", expires_at=100, now=50))

    def test_expired_nonces_pruned(self):
        reg = InMemoryNonceRegistry()
        self.assertTrue(reg.register("abc", expires_at=100, now=0))
        self.assertTrue(reg.register("abc", expires_at=300, now=101))


if __name__ == "__main__":
    unittest.main()
