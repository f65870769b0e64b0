#!/usr/bin/env python3
"""
Smoke test for powgate deployments.

Exercises the full admission flow against a running gate:
- Fast (difficulty 4 solves in well under a second)
- Actionable failures (step name, HTTP status/body preview)

Flow (default):
1. Health check
2. Challenge page renders (GET /get_challenge)
3. JSON challenge + PoW solve + POST /api/v1/solutions
4. Credential accepted by GET /api/v1/validate
5. Replay of the same solution is refused
6. Form flow (POST /post_nonce) sets the credential cookie

Usage:
    ./scripts/smoke-test.py https://gate.example.com
    ./scripts/smoke-test.py https://gate.example.com --health-only
"""

import argparse
import hashlib
import json
import random
import re
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

SkipCheck = Callable[["SmokeContext"], str | None]


class ApiError(RuntimeError):
    def __init__(self, status_code: int, body: str):
        super().__init__(f"API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRIES = 2
DEFAULT_RETRY_BACKOFF_SECONDS = 0.5
MAX_ERROR_BODY_CHARS = 10_000
BODY_PREVIEW_BYTES = 200
MAX_BACKOFF_SECONDS = 4.0
COOKIE_NAME = "mpow_token"


def log(msg: str) -> None:
    """Print timestamped log message."""
    print(f"[{datetime.now().strftime('%H:%M:%S')}] {msg}", flush=True)


def _preview_bytes(value: bytes, limit: int = BODY_PREVIEW_BYTES) -> bytes:
    if len(value) <= limit:
        return value
    return value[:limit]


def _decode_limited(value: bytes, max_chars: int = MAX_ERROR_BODY_CHARS) -> str:
    decoded = value.decode("utf-8", errors="replace")
    if len(decoded) <= max_chars:
        return decoded
    return decoded[:max_chars] + "…"


def _is_retryable_status(status_code: int) -> bool:
    # 429 is deliberately absent: the gate uses it for exhausted attempts.
    return status_code in {408, 425, 502, 503, 504, 522, 524}


def _header(headers: dict[str, str], name: str) -> str:
    return next((v for k, v in headers.items() if k.lower() == name.lower()), "")


@dataclass
class HttpClient:
    base_url: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retries: int = DEFAULT_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        timeout_seconds: float | None = None,
    ) -> tuple[int, dict[str, str], bytes]:
        effective_timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        req_headers = headers or {}

        max_attempts = max(1, self.retries + 1)
        for attempt in range(1, max_attempts + 1):
            try:
                request = Request(url, data=body, headers=req_headers, method=method)
                try:
                    with urlopen(request, timeout=effective_timeout) as response:
                        return response.getcode(), dict(response.headers.items()), response.read()
                except HTTPError as e:
                    error_body = e.read() if e.fp else b""
                    resp_headers = dict(e.headers.items()) if e.headers else {}
                    if attempt < max_attempts and _is_retryable_status(e.code):
                        self._sleep_backoff(attempt)
                        continue
                    return e.code, resp_headers, error_body
            except (URLError, TimeoutError) as e:
                if attempt < max_attempts:
                    self._sleep_backoff(attempt)
                    continue
                raise RuntimeError(f"Network error after {attempt} attempts: {e}") from e

        raise RuntimeError(f"No response after {max_attempts} attempts: {method} {url}")

    def api_json(
        self,
        method: str,
        path: str,
        *,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}/api/v1{path}"
        req_headers: dict[str, str] = {"Content-Type": "application/json"}
        if headers:
            req_headers.update(headers)

        body_bytes = json.dumps(data).encode() if data is not None else None
        status, _, body = self.request(method, url, headers=req_headers, body=body_bytes)
        if status < 200 or status >= 300:
            raise ApiError(status, _decode_limited(body))
        try:
            return json.loads(body.decode())
        except json.JSONDecodeError as e:
            raise RuntimeError(
                f"Invalid JSON response from {method} {path}: preview={_preview_bytes(body)!r}"
            ) from e

    def post_form(self, path: str, fields: dict[str, str]) -> tuple[int, dict[str, str], bytes]:
        return self.request(
            "POST",
            f"{self.base_url}{path}",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            body=urlencode(fields).encode(),
        )

    def get(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout_seconds: float | None = None,
    ) -> tuple[int, dict[str, str], bytes]:
        return self.request("GET", url, headers=headers, timeout_seconds=timeout_seconds)

    def _sleep_backoff(self, attempt: int) -> None:
        base = self.retry_backoff_seconds * (2 ** (attempt - 1))
        jitter = random.random() * self.retry_backoff_seconds
        time.sleep(min(MAX_BACKOFF_SECONDS, base + jitter))


def wait_for_health(client: HttpClient, max_attempts: int = 30, delay: float = 2.0) -> bool:
    """Wait for /health to return healthy status."""
    url = f"{client.base_url}/health"

    for attempt in range(1, max_attempts + 1):
        try:
            status, _, body = client.get(url, timeout_seconds=10.0)
            if status == 200:
                data = json.loads(body.decode())
                if data.get("status") == "healthy":
                    log(f"Health check passed (attempt {attempt})")
                    return True
        except (json.JSONDecodeError, RuntimeError) as e:
            log(f"Health attempt {attempt} failed: {e}")

        if attempt < max_attempts:
            time.sleep(delay)

    return False


def solve_pow(secret: str, prefix: str) -> str:
    """
    Solve proof-of-work challenge.

    Finds the smallest decimal nonce where SHA256(secret || nonce) hex
    starts with ``prefix``.
    """
    counter = 0
    start_time = time.time()

    while True:
        digest = hashlib.sha256(f"{secret}{counter}".encode()).hexdigest()
        if digest.startswith(prefix):
            elapsed = max(time.time() - start_time, 1e-6)
            log(f"PoW solved: nonce={counter} ({elapsed:.2f}s, {counter/elapsed:.0f} H/s)")
            return str(counter)

        counter += 1

        if counter % 1_000_000 == 0:
            elapsed = time.time() - start_time
            log(f"PoW progress: {counter:,} attempts ({counter/elapsed:.0f} H/s)")


@dataclass
class SmokeContext:
    client: HttpClient
    max_health_attempts: int

    challenge: dict[str, Any] | None = None
    nonce: str | None = None
    credential: str | None = None

    def require_challenge(self) -> dict[str, Any]:
        if self.challenge is None:
            raise RuntimeError("Missing challenge (step ordering bug)")
        return self.challenge

    def require_nonce(self) -> str:
        if not self.nonce:
            raise RuntimeError("Missing nonce (step ordering bug)")
        return self.nonce

    def require_credential(self) -> str:
        if not self.credential:
            raise RuntimeError("Missing credential (step ordering bug)")
        return self.credential


@dataclass(frozen=True)
class Step:
    name: str
    run: Callable[[SmokeContext], None]
    # Return `None` to run the step; return a string to skip with that reason.
    skip_reason: SkipCheck | None = None


@dataclass(frozen=True)
class StepResult:
    name: str
    status: str  # passed|skipped|failed
    seconds: float
    detail: str | None = None


def _print_summary(results: list[StepResult], total_seconds: float) -> None:
    log("Summary:")
    for result in results:
        suffix = f" - {result.detail}" if result.detail else ""
        log(f"  {result.status.upper():7} {result.name} ({result.seconds:.2f}s){suffix}")
    log(f"Total: {total_seconds:.2f}s")


def run_steps(ctx: SmokeContext, steps: list[Step]) -> bool:
    results: list[StepResult] = []
    overall_start = time.time()

    for step in steps:
        reason = step.skip_reason(ctx) if step.skip_reason else None
        if reason:
            log(f"SKIP: {step.name}: {reason}")
            results.append(StepResult(step.name, "skipped", 0.0, reason))
            continue

        log(f"STEP: {step.name}")
        start = time.time()
        try:
            step.run(ctx)
        except Exception as e:
            elapsed = time.time() - start
            results.append(StepResult(step.name, "failed", elapsed, str(e)))
            _print_summary(results, time.time() - overall_start)
            return False

        elapsed = time.time() - start
        results.append(StepResult(step.name, "passed", elapsed))
        log(f"OK: {step.name} ({elapsed:.2f}s)")

    _print_summary(results, time.time() - overall_start)
    return True


def step_health(ctx: SmokeContext) -> None:
    log(f"Checking health: {ctx.client.base_url}/health")
    if not wait_for_health(ctx.client, max_attempts=ctx.max_health_attempts):
        raise RuntimeError("Health check failed")


def step_challenge_page(ctx: SmokeContext) -> None:
    url = f"{ctx.client.base_url}/get_challenge"
    log(f"Fetching challenge page: {url}")
    status, headers, body = ctx.client.get(url)
    if status != 200:
        raise RuntimeError(f"Challenge page returned {status}: preview={_preview_bytes(body)!r}")

    content_type = _header(headers, "content-type").lower()
    if "text/html" not in content_type:
        raise RuntimeError(f"Challenge page Content-Type not HTML: {content_type!r}")

    body_text = body.decode("utf-8", errors="replace")
    if not re.search(r"Challenge string:\s*<code>[0-9a-f]+</code>", body_text):
        raise RuntimeError(f"Challenge page missing challenge string: preview={_preview_bytes(body)!r}")


def step_solve(ctx: SmokeContext) -> None:
    log("Requesting PoW challenge")
    challenge = ctx.client.api_json("GET", "/challenge")
    log(f"Got challenge: difficulty={challenge['difficulty']}, expires={challenge['expires_at']}")

    ctx.challenge = challenge
    ctx.nonce = solve_pow(challenge["secret"], challenge["prefix"])

    log("Submitting solution")
    result = ctx.client.api_json(
        "POST", "/solutions", data={"key": challenge["key"], "nonce": ctx.require_nonce()}
    )
    ctx.credential = result["credential"]
    log(f"Credential issued: subject={result['subject']}, expires={result['expires_at']}")


def step_validate(ctx: SmokeContext) -> None:
    access = ctx.client.api_json(
        "GET",
        "/validate",
        headers={"Authorization": f"Bearer {ctx.require_credential()}"},
    )
    if not access.get("authenticated"):
        raise RuntimeError(f"Credential not accepted: {access!r}")


def step_replay(ctx: SmokeContext) -> None:
    challenge = ctx.require_challenge()
    try:
        ctx.client.api_json(
            "POST", "/solutions", data={"key": challenge["key"], "nonce": ctx.require_nonce()}
        )
    except ApiError as e:
        if e.status_code != 403:
            raise RuntimeError(f"Expected 403 on replay, got {e.status_code}") from e
        return
    raise RuntimeError("Replayed solution was accepted")


def step_form_flow(ctx: SmokeContext) -> None:
    challenge = ctx.client.api_json("GET", "/challenge")
    nonce = solve_pow(challenge["secret"], challenge["prefix"])

    status, headers, body = ctx.client.post_form(
        "/post_nonce", {"token": challenge["key"], "nonce": nonce}
    )
    if status != 200:
        raise RuntimeError(f"/post_nonce returned {status}: {_decode_limited(body)}")

    cookie = _header(headers, "set-cookie")
    match = re.search(rf"{COOKIE_NAME}=([^;]+)", cookie)
    if not match:
        raise RuntimeError(f"No {COOKIE_NAME} cookie set: {cookie!r}")

    status, _, body = ctx.client.get(
        f"{ctx.client.base_url}/validate", headers={"Cookie": f"{COOKIE_NAME}={match.group(1)}"}
    )
    if status != 200:
        raise RuntimeError(f"/validate with cookie returned {status}: {_decode_limited(body)}")


def main() -> int:
    parser = argparse.ArgumentParser(description="powgate smoke test")
    parser.add_argument("base_url", help="Base URL (e.g., https://gate.example.com)")
    parser.add_argument(
        "--health-only",
        action="store_true",
        help="Only run health check, skip full flow",
    )
    parser.add_argument(
        "--skip-form",
        action="store_true",
        help="Skip the cookie-based form flow",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT_SECONDS,
        help=f"HTTP timeout seconds (default: {DEFAULT_TIMEOUT_SECONDS:g})",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=DEFAULT_RETRIES,
        help=f"Retries for transient failures (default: {DEFAULT_RETRIES})",
    )
    parser.add_argument(
        "--max-health-attempts",
        type=int,
        default=30,
        help="Max health check attempts (default: 30)",
    )
    args = parser.parse_args()

    try:
        base_url = args.base_url.rstrip("/")
        client = HttpClient(base_url=base_url, timeout_seconds=args.timeout, retries=args.retries)
        ctx = SmokeContext(client=client, max_health_attempts=args.max_health_attempts)

        steps: list[Step] = [Step("health", step_health)]
        if args.health_only:
            log("Health-only mode: skipping full flow")
        else:
            steps.extend(
                [
                    Step("challenge page", step_challenge_page),
                    Step("solve challenge", step_solve),
                    Step("validate credential", step_validate),
                    Step("replay refused", step_replay),
                    Step(
                        "form flow",
                        step_form_flow,
                        skip_reason=(lambda _: "disabled via --skip-form") if args.skip_form else None,
                    ),
                ]
            )

        ok = run_steps(ctx, steps)
        return 0 if ok else 1
    except Exception as e:
        log(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
