"""
ICMP ping via subprocess (1 packet). Windows: ping -n 1 -w <wait_ms> <host>.
Linux/macOS: ping -c 1 -W <wait_s> <host>.
The whole call is bounded by the caller's budget; an overrun kills the child
and reports TIMEOUT. Single attempt, no retries.
"""
import asyncio
import enum
import logging
import re
import sys
import time
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger("pingoff.ping")


class Outcome(enum.Enum):
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"
    TIMED_OUT = "timed_out"


@dataclass
class PingResult:
    success: bool
    latency_ms: Optional[float]  # None if failed or unparseable
    reason: str  # "OK", "NO_REPLY", "UNREACHABLE", "TIMEOUT", "ERROR:<code>"
    error: Optional[str] = None

    @property
    def outcome(self) -> Outcome:
        if self.success:
            return Outcome.REACHABLE
        if self.reason == "TIMEOUT":
            return Outcome.TIMED_OUT
        return Outcome.UNREACHABLE


def _wait_seconds(budget_s: float) -> float:
    """Per-reply wait handed to ping: one second under the budget, or half of a budget under two seconds."""
    if budget_s >= 2:
        return float(int(budget_s) - 1)
    return budget_s / 2


def build_command(host: str, budget_s: float) -> list[str]:
    wait_s = _wait_seconds(budget_s)
    if sys.platform == "win32":
        return ["ping", "-n", "1", "-w", str(int(wait_s * 1000)), host]
    return ["ping", "-c", "1", "-W", f"{wait_s:g}", host]


async def _kill(proc) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        return
    await proc.wait()


async def run_ping(host: str, budget_s: float) -> PingResult:
    """
    Run one ping bounded by budget_s seconds. Returns PingResult with success,
    latency_ms (if success), reason string and error detail.
    Cancellation kills the child process and propagates.
    """
    cmd = build_command(host, budget_s)
    start = time.perf_counter()
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return PingResult(success=False, latency_ms=None, reason=f"ERROR:{type(e).__name__}", error=str(e))

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=budget_s)
    except asyncio.TimeoutError:
        await _kill(proc)
        return PingResult(
            success=False,
            latency_ms=None,
            reason="TIMEOUT",
            error=f"ping {host} did not finish within {budget_s:g}s",
        )
    except asyncio.CancelledError:
        logger.debug("Ping %s cancelled, killing child", host)
        await _kill(proc)
        raise
    elapsed_ms = (time.perf_counter() - start) * 1000.0
    return _interpret(proc.returncode or 0, stdout.decode("utf-8", errors="replace"), elapsed_ms)


def _interpret(returncode: int, output: str, elapsed_ms: float) -> PingResult:
    """Interpret ping return code and optional output for latency/reason."""
    # Windows exits 0 on "Destination host unreachable" replies from a router
    if returncode == 0 and sys.platform == "win32" and "unreachable" in output.lower():
        return PingResult(success=False, latency_ms=None, reason="UNREACHABLE")
    if returncode == 0:
        lat = _parse_latency(output)
        return PingResult(success=True, latency_ms=lat if lat is not None else round(elapsed_ms, 1), reason="OK")
    # Failure; ping itself finished, so its own "timed out" means no reply
    output_lower = output.lower()
    if "unreachable" in output_lower:
        reason = "UNREACHABLE"
    elif "timed out" in output_lower or "100% packet loss" in output_lower or "100.0% packet loss" in output_lower:
        reason = "NO_REPLY"
    else:
        reason = f"ERROR:{returncode}"
    return PingResult(success=False, latency_ms=None, reason=reason)


def _parse_latency(output: str) -> Optional[float]:
    """Extract latency in ms from ping output. Windows: time=12ms, Linux: time=12.3 ms."""
    m = re.search(r"time[=<:]?\s*([\d.]+)\s*ms", output, re.I)
    if m:
        try:
            return float(m.group(1))
        except ValueError:
            pass
    m = re.search(r"([\d.]+)\s*ms", output)
    if m:
        try:
            return float(m.group(1))
        except ValueError:
            pass
    return None
