"""Async gpsd client with auto-reconnect and a fault channel."""

from __future__ import annotations

import asyncio
import json
import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import AsyncIterator, Callable, Optional

from ...domain.models import RawFix, SourceFault

logger = logging.getLogger(__name__)

FixCallback = Callable[[RawFix], None]
FaultCallback = Callable[[SourceFault], None]


@dataclass
class GPSConfig:
    """GPS daemon connection configuration."""

    host: str = "localhost"
    port: int = 2947
    reconnect_delay: float = 5.0
    timeout: float = 10.0
    max_reconnect_attempts: int = 0  # 0 = infinite


@dataclass
class GPSState:
    """Internal GPS state tracking."""

    connected: bool = False
    fix_count: int = 0
    error_count: int = 0
    last_fix: Optional[datetime] = None
    satellites: int = 0


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AsyncGPSClient:
    """
    Async gpsd client with auto-reconnect.

    Features:
    - Non-blocking async connection
    - Automatic reconnection on disconnect
    - Callback-based fix and fault delivery
    - Fixes are stamped with their arrival time

    Usage:
        client = AsyncGPSClient()
        client.on_fault(lambda fault: print(fault.message))

        async for fix in client.stream_fixes():
            print(f"Lat: {fix.latitude}, Lon: {fix.longitude}")
    """

    def __init__(
        self,
        config: GPSConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config or GPSConfig()
        self._clock = clock
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._running = False
        self._fix: Optional[RawFix] = None
        self._callbacks: list[FixCallback] = []
        self._fault_callbacks: list[FaultCallback] = []
        self._state = GPSState()
        self._reconnect_attempts = 0

    @property
    def fix(self) -> Optional[RawFix]:
        """Get last received fix."""
        return self._fix

    @property
    def is_connected(self) -> bool:
        """Check if connected to gpsd."""
        return self._state.connected

    @property
    def state(self) -> GPSState:
        """Get internal state for diagnostics."""
        return self._state

    def on_fix(self, callback: FixCallback) -> None:
        """Register callback for fix updates."""
        self._callbacks.append(callback)

    def on_fault(self, callback: FaultCallback) -> None:
        """Register callback for source faults."""
        self._fault_callbacks.append(callback)

    def _report_fault(self, message: str, transient: bool = True) -> None:
        self._state.error_count += 1
        fault = SourceFault(message=message, transient=transient, timestamp=self._clock())
        for cb in self._fault_callbacks:
            try:
                cb(fault)
            except Exception as e:
                logger.error("GPS fault callback error: %s", e)

    async def connect(self) -> bool:
        """
        Connect to gpsd daemon.

        Returns:
            True if connected successfully, False otherwise.
        """
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.config.host, self.config.port),
                timeout=self.config.timeout,
            )

            # Enable JSON streaming mode
            self._writer.write(b'?WATCH={"enable":true,"json":true}\n')
            await self._writer.drain()

            self._state.connected = True
            self._reconnect_attempts = 0
            logger.info("Connected to gpsd at %s:%d", self.config.host, self.config.port)
            return True

        except asyncio.TimeoutError:
            logger.warning("GPS connection timeout to %s:%d", self.config.host, self.config.port)
            self._report_fault(f"gpsd connection timeout ({self.config.host}:{self.config.port})")
            return False

        except ConnectionRefusedError:
            logger.warning("GPS connection refused - is gpsd running?")
            self._report_fault("gpsd connection refused")
            return False

        except OSError as e:
            logger.warning("GPS connection failed: %s", e)
            self._report_fault(f"gpsd connection failed: {e}")
            return False

    async def disconnect(self) -> None:
        """Disconnect from gpsd gracefully."""
        if self._writer:
            try:
                self._writer.write(b'?WATCH={"enable":false}\n')
                await self._writer.drain()
                self._writer.close()
                await self._writer.wait_closed()
            except (OSError, ConnectionError) as e:
                logger.debug("GPS disconnect error ignored: %s", e)

        self._reader = None
        self._writer = None
        self._state.connected = False

    async def stream_fixes(self) -> AsyncIterator[RawFix]:
        """
        Async generator that yields fixes.

        Handles reconnection automatically. Errors are reported on the
        fault channel, never raised.
        """
        self._running = True

        while self._running:
            if not self._reader:
                if not await self.connect():
                    self._reconnect_attempts += 1

                    if (
                        self.config.max_reconnect_attempts > 0
                        and self._reconnect_attempts >= self.config.max_reconnect_attempts
                    ):
                        logger.error("GPS max reconnect attempts reached, stopping")
                        self._report_fault("gpsd unreachable, giving up", transient=False)
                        break

                    await asyncio.sleep(self.config.reconnect_delay)
                    continue

            try:
                line = await asyncio.wait_for(
                    self._reader.readline(),  # type: ignore[union-attr]
                    timeout=self.config.timeout,
                )

                if not line:
                    raise ConnectionError("GPS connection closed by server")

                data = json.loads(line.decode("utf-8"))

                # TPV = Time-Position-Velocity
                if data.get("class") == "TPV":
                    fix = self.parse_tpv(data, self._clock())
                    if fix:
                        self._fix = fix
                        self._state.fix_count += 1
                        self._state.last_fix = fix.timestamp

                        for cb in self._callbacks:
                            try:
                                cb(fix)
                            except Exception as e:
                                logger.error("GPS callback error: %s", e)

                        yield fix

                elif data.get("class") == "SKY":
                    self._state.satellites = len(data.get("satellites", []))

            except asyncio.TimeoutError:
                # No new data; the watchdog covers the gap
                logger.debug("GPS read timeout, connection still alive")

            except json.JSONDecodeError as e:
                logger.warning("GPS JSON parse error: %s", e)

            except (ConnectionError, OSError) as e:
                logger.warning("GPS stream error: %s, reconnecting...", e)
                self._report_fault(f"gpsd stream error: {e}")
                await self.disconnect()
                await asyncio.sleep(self.config.reconnect_delay)

    @staticmethod
    def parse_tpv(data: dict, received_at: datetime) -> Optional[RawFix]:
        """
        Parse TPV (Time-Position-Velocity) message from gpsd.

        Args:
            data: JSON dict from gpsd TPV message
            received_at: arrival time used as the fix timestamp

        Returns:
            RawFix if a 2D/3D fix with lat/lon is present, None otherwise
        """
        try:
            if "lat" not in data or "lon" not in data:
                return None

            # Mode: 0=unknown, 1=no fix, 2=2D, 3=3D
            if data.get("mode", 0) < 2:
                return None

            accuracy = data.get("eph")
            if accuracy is None and "epx" in data and "epy" in data:
                accuracy = math.hypot(float(data["epx"]), float(data["epy"]))

            return RawFix(
                latitude=float(data["lat"]),
                longitude=float(data["lon"]),
                accuracy_m=float(accuracy) if accuracy is not None else None,
                speed_mps=data.get("speed"),
                altitude=data.get("altMSL", data.get("alt")),
                timestamp=received_at,
            )

        except (KeyError, ValueError, TypeError) as e:
            logger.error("TPV parse error: %s - data: %s", e, data)
            return None

    async def stop(self) -> None:
        """Stop streaming and disconnect."""
        self._running = False
        await self.disconnect()


class MockGPSClient(AsyncGPSClient):
    """
    Mock GPS client for testing and simulation.

    Drives north at a constant speed with a good accuracy radius.
    """

    def __init__(
        self,
        start_lat: float = 41.0082,  # Istanbul
        start_lon: float = 28.9784,
        speed_mps: float = 13.9,
        interval: float = 3.0,
        accuracy_m: float = 8.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(clock=clock)
        self._start_lat = start_lat
        self._start_lon = start_lon
        self._speed = speed_mps
        self._interval = interval
        self._accuracy = accuracy_m
        self._step = 0

    async def connect(self) -> bool:
        """Mock always connects."""
        self._state.connected = True
        logger.info("Mock GPS connected (simulated)")
        return True

    async def stream_fixes(self) -> AsyncIterator[RawFix]:
        """Generate fake fixes along a meridian."""
        self._running = True
        await self.connect()

        # metres per degree of latitude
        deg_per_m = 1.0 / (math.pi * 6371000 / 180.0)

        while self._running:
            lat = self._start_lat + self._step * self._speed * self._interval * deg_per_m

            fix = RawFix(
                latitude=lat,
                longitude=self._start_lon,
                accuracy_m=self._accuracy,
                speed_mps=self._speed,
                altitude=50.0,
                timestamp=self._clock(),
            )

            self._fix = fix
            self._step += 1
            self._state.fix_count += 1

            for cb in self._callbacks:
                try:
                    cb(fix)
                except Exception as e:
                    logger.error("GPS callback error: %s", e)

            yield fix
            await asyncio.sleep(self._interval)
