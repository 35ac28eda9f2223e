"""
Watchdog loop: ping the target on a fixed cadence, fold each result into the
failure-streak state machine, log notable transitions and power off once the
streak reaches the timeout. One probe in flight at most; the loop ends after
the poweroff attempt or when its task is cancelled.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from pingoff.config import WatchdogConfig
from pingoff.errors import ShutdownError
from pingoff.ping import Outcome, PingResult, run_ping
from pingoff.shutdown import ShutdownAction, make_shutdown_action
from pingoff.state import MonitorState, State

logger = logging.getLogger("pingoff.monitor")

ProbeFn = Callable[[str, float], Awaitable[PingResult]]
SleepFn = Callable[[float], Awaitable[None]]


@dataclass
class TickReport:
    """What one tick saw and decided."""
    outcome: Outcome
    reason: str
    state: State
    elapsed: int  # seconds into the failure streak, 0 when healthy
    progress_logged: bool = False
    shutdown_triggered: bool = False


def _format_latency(result: PingResult) -> str:
    return f"{result.latency_ms:.0f}ms" if result.latency_ms is not None else "0ms"


class Monitor:
    def __init__(
        self,
        config: WatchdogConfig,
        shutdown: ShutdownAction,
        probe: ProbeFn = run_ping,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.config = config
        self.state = MonitorState(timeout=config.timeout, log_every=config.log_every)
        self._shutdown = shutdown
        self._probe = probe
        self._clock = clock
        self._sleep = sleep

    async def _run_probe(self) -> PingResult:
        host = self.config.host
        try:
            result = await self._probe(host, float(self.config.interval))
        except Exception as e:
            logger.exception("Ping %s crashed: %s", host, e)
            return PingResult(success=False, latency_ms=None, reason=f"ERROR:{type(e).__name__}", error=str(e))

        if result.outcome is Outcome.TIMED_OUT:
            logger.warning("Ping %s err: %s", host, result.error or "timeout")
        elif result.reason.startswith("ERROR"):
            logger.warning("Ping %s err: %s %s", host, result.reason, result.error or "")
        return result

    async def tick(self) -> TickReport:
        """Probe once and apply the result. Must not be called after shutdown."""
        if self.state.terminated:
            raise RuntimeError("monitor already triggered shutdown")
        host = self.config.host
        result = await self._run_probe()
        now = self._clock()

        if result.success:
            prev, outage = self.state.record_success(now)
            if prev == State.FAILING:
                logger.info("Ping %s OK %s, recovered after %ds offline", host, _format_latency(result), outage)
            else:
                logger.info("Ping %s OK %s", host, _format_latency(result))
            return TickReport(outcome=result.outcome, reason=result.reason, state=self.state.state, elapsed=0)

        verdict = self.state.record_failure(now)
        if verdict.started:
            logger.warning("Ping %s failed (%s), timer started", host, result.reason)
        if verdict.log_progress:
            logger.warning("Ping %s failed for %ds/%ds", host, verdict.elapsed, self.config.timeout)
        if verdict.timed_out:
            await self._trigger_shutdown(verdict.elapsed)
        return TickReport(
            outcome=result.outcome,
            reason=result.reason,
            state=self.state.state,
            elapsed=verdict.elapsed,
            progress_logged=verdict.log_progress,
            shutdown_triggered=verdict.timed_out,
        )

    async def _trigger_shutdown(self, elapsed: int) -> None:
        self.state.mark_terminated()
        logger.critical(
            "%s unreachable for %ds (timeout %ds), powering off", self.config.host, elapsed, self.config.timeout
        )
        try:
            await self._shutdown()
        except ShutdownError as e:
            logger.error("Poweroff err: %s", e)
        except Exception as e:
            logger.exception("Poweroff err: %s", e)

    async def run(self) -> None:
        """Tick every `interval` seconds until shutdown is triggered; run until cancelled otherwise."""
        interval = self.config.interval
        logger.info(
            "Monitor %s every %ds, shutdown after %ds offline (progress every %ds)",
            self.config.host,
            interval,
            self.config.timeout,
            self.config.log_every,
        )
        next_tick = self._clock() + interval
        try:
            while True:
                await self._sleep(max(0.0, next_tick - self._clock()))
                report = await self.tick()
                if report.shutdown_triggered:
                    logger.info("Monitor stopped after poweroff")
                    return
                next_tick = self._next_tick(next_tick)
        except asyncio.CancelledError:
            logger.info("Monitor stopped")
            raise

    def _next_tick(self, last: float) -> float:
        """Next slot on the start + k*interval grid; slots a slow tick overran are dropped."""
        interval = self.config.interval
        now = self._clock()
        nxt = last + interval
        if nxt <= now:
            skipped = int((now - nxt) // interval) + 1
            logger.debug("Tick overran, skipping %d slot(s)", skipped)
            nxt += skipped * interval
        return nxt


def build_monitor(config: WatchdogConfig, shutdown: Optional[ShutdownAction] = None) -> Monitor:
    if shutdown is None:
        shutdown = make_shutdown_action(config)
    return Monitor(config, shutdown=shutdown)
