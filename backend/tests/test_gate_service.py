"""Tests for the gate protocol: issue, submit, check."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from powgate.services.errors import (
    BadSignatureError,
    ChallengeExpiredError,
    ChallengeNotFoundError,
    CredentialExpiredError,
    GateError,
    GateOutcome,
    InvalidNonceError,
    MalformedCredentialError,
    NonceTooLongError,
    RateLimitedError,
)
from tests.test_utils import find_wrong_nonce, solve_pow


class TestRequestChallenge:
    def test_fresh_challenge_each_time(self, gate):
        first = gate.request_challenge()
        second = gate.request_challenge()

        assert first.key != second.key
        assert first.secret != second.secret
        assert len(gate.store) == 2

    def test_render_gets_key_secret_and_prefix(self, gate):
        challenge = gate.request_challenge()
        body = gate.render_challenge(challenge).decode()

        assert challenge.key in body
        assert challenge.secret in body
        assert '"0000"' in body


class TestSubmitSolution:
    def test_correct_nonce_issues_credential(self, gate):
        challenge = gate.request_challenge()
        nonce = solve_pow(challenge.secret, gate.required_prefix)

        credential = gate.submit_solution(challenge.key, nonce)

        assert credential.subject == "verified_user"
        assert gate.check_access(credential.token) == "verified_user"
        assert challenge.key not in gate.store

    def test_no_replay_after_success(self, gate):
        challenge = gate.request_challenge()
        nonce = solve_pow(challenge.secret, gate.required_prefix)
        gate.submit_solution(challenge.key, nonce)

        with pytest.raises(ChallengeNotFoundError):
            gate.submit_solution(challenge.key, nonce)

    def test_wrong_nonce_keeps_challenge(self, gate):
        challenge = gate.request_challenge()
        nonce = find_wrong_nonce(challenge.secret, gate.required_prefix)

        with pytest.raises(InvalidNonceError):
            gate.submit_solution(challenge.key, nonce)

        assert gate.store.get_for_verification(challenge.key).attempts == 1

    def test_retry_after_wrong_nonce(self, gate):
        challenge = gate.request_challenge()
        with pytest.raises(InvalidNonceError):
            gate.submit_solution(challenge.key, find_wrong_nonce(challenge.secret, "0000"))

        credential = gate.submit_solution(challenge.key, solve_pow(challenge.secret, "0000"))
        assert credential.subject == "verified_user"

    def test_unknown_key(self, gate):
        with pytest.raises(ChallengeNotFoundError):
            gate.submit_solution("no-such-key", "123")

    def test_rate_limited_on_attempt_after_max(self, gate):
        """max_attempts wrong nonces are each rejected; the next one is rate limited."""
        challenge = gate.request_challenge()
        wrong = find_wrong_nonce(challenge.secret, gate.required_prefix)

        for _ in range(gate.store.max_attempts):
            with pytest.raises(InvalidNonceError):
                gate.submit_solution(challenge.key, wrong)

        with pytest.raises(RateLimitedError):
            gate.submit_solution(challenge.key, wrong)

    def test_rate_limited_even_with_correct_nonce(self, gate):
        challenge = gate.request_challenge()
        wrong = find_wrong_nonce(challenge.secret, gate.required_prefix)
        for _ in range(gate.store.max_attempts):
            with pytest.raises(InvalidNonceError):
                gate.submit_solution(challenge.key, wrong)

        with pytest.raises(RateLimitedError):
            gate.submit_solution(challenge.key, solve_pow(challenge.secret, gate.required_prefix))

        assert challenge.key in gate.store

    def test_expired_even_with_correct_nonce(self, gate, clock):
        challenge = gate.request_challenge()
        nonce = solve_pow(challenge.secret, gate.required_prefix)
        clock.advance(seconds=301)

        with pytest.raises(ChallengeExpiredError):
            gate.submit_solution(challenge.key, nonce)

        assert challenge.key not in gate.store

    def test_nonce_too_long_does_not_consume_attempt(self, gate):
        challenge = gate.request_challenge()

        with pytest.raises(NonceTooLongError):
            gate.submit_solution(challenge.key, "1" * 129)

        assert gate.store.get_for_verification(challenge.key).attempts == 0

    def test_concurrent_correct_submissions_issue_one_credential(self, gate):
        challenge = gate.request_challenge()
        nonce = solve_pow(challenge.secret, gate.required_prefix)

        def submit(_):
            try:
                return gate.submit_solution(challenge.key, nonce)
            except ChallengeNotFoundError:
                return None

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(submit, range(10)))

        assert len([r for r in results if r is not None]) == 1


class TestCheckAccess:
    def test_expired_credential(self, gate, clock):
        challenge = gate.request_challenge()
        credential = gate.submit_solution(
            challenge.key, solve_pow(challenge.secret, gate.required_prefix)
        )
        clock.advance(hours=36)

        with pytest.raises(CredentialExpiredError):
            gate.check_access(credential.token)

    def test_garbage(self, gate):
        with pytest.raises(MalformedCredentialError):
            gate.check_access("garbage")

    def test_check_access_does_not_touch_store(self, gate):
        gate.request_challenge()
        token = gate.credentials.issue("verified_user").token

        gate.check_access(token)
        assert len(gate.store) == 1

    def test_tampered_subject(self, gate):
        token = gate.credentials.issue("verified_user").token
        header, payload, signature = token.split(".")
        first = "B" if payload[0] != "B" else "C"
        forged = ".".join([header, first + payload[1:], signature])

        with pytest.raises((BadSignatureError, MalformedCredentialError)):
            gate.check_access(forged)


class TestErrorTaxonomy:
    @pytest.mark.parametrize(
        "error, outcome",
        [
            (ChallengeNotFoundError(), GateOutcome.NO_CHALLENGE),
            (ChallengeExpiredError(), GateOutcome.EXPIRED),
            (RateLimitedError(), GateOutcome.RATE_LIMITED),
            (InvalidNonceError(), GateOutcome.REJECTED),
        ],
    )
    def test_outcomes(self, error, outcome):
        assert isinstance(error, GateError)
        assert isinstance(error, ValueError)
        assert error.outcome == outcome

    def test_codes_are_distinct(self):
        errors = [
            ChallengeNotFoundError,
            ChallengeExpiredError,
            RateLimitedError,
            InvalidNonceError,
            NonceTooLongError,
            CredentialExpiredError,
            MalformedCredentialError,
            BadSignatureError,
        ]
        assert len({e.code for e in errors}) == len(errors)

    def test_default_messages(self):
        assert str(ChallengeNotFoundError()) == "No active challenge"
        assert str(RateLimitedError()) == "Too many attempts"
        assert str(InvalidNonceError("custom")) == "custom"
