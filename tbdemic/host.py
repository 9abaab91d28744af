"""
Execution host: owns one simulation engine, paces it against wall-clock time and talks to the
display layer through commands in and messages out.

The host can be driven synchronously (``handle_command`` and ``tick``) or from a background worker
thread fed by a command queue (``submit``, ``start_worker`` and ``shutdown``). Either way a single
thread touches the engine; outbound messages carry freshly built plain records.
"""
import logging
import queue
import threading
import time
from enum import Enum
from typing import Callable, Optional

import attr

from tbdemic.config import SimulationConfig
from tbdemic.engine import MAX_SPEED, MIN_SPEED, SimulationEngine, SimulationStatus
from tbdemic.exceptions import CommandError, SimulationError, TbdemicError
from tbdemic.scheduler import MAX_STEPS_PER_FRAME, UPDATE_INTERVAL_SECONDS, FrameClock
from tbdemic.serialization import serialize_event, serialize_state

logger = logging.getLogger(__name__)


class CommandType(Enum):
    START = "START"
    PAUSE = "PAUSE"
    RESUME = "RESUME"
    STOP = "STOP"
    SET_SPEED = "SET_SPEED"
    UPDATE_CONFIG = "UPDATE_CONFIG"


class MessageType(Enum):
    STATE_UPDATE = "STATE_UPDATE"
    EVENT = "EVENT"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


@attr.s(auto_attribs=True, frozen=True)
class HostCommand:
    """
    Inbound command.

    Attributes:
    ------------
    * type: The CommandType.

    * config: Full configuration (START) or partial record (UPDATE_CONFIG).

    * speed: Speed multiplier (START, SET_SPEED).
    """

    type: CommandType = attr.ib(converter=CommandType)
    config: object = None
    speed: Optional[float] = None

    @classmethod
    def from_dict(cls, values) -> "HostCommand":
        """
        :raises CommandError:
            If ``values`` is not a mapping or names an unknown command type.
        """
        if isinstance(values, HostCommand):
            return values
        if not isinstance(values, dict):
            raise CommandError(f"Commands must be mappings, got {values!r}")
        try:
            command_type = CommandType(values.get("type"))
        except ValueError:
            raise CommandError(f"Unknown message type: {values.get('type')}") from None
        return cls(type=command_type, config=values.get("config"), speed=values.get("speed"))


@attr.s(auto_attribs=True, frozen=True)
class HostMessage:
    type: MessageType
    state: Optional[dict] = None
    event: Optional[dict] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        record = {"type": self.type.value}
        for name in ("state", "event", "error"):
            value = getattr(self, name)
            if value is not None:
                record[name] = value
        return record


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class SimulationHost:
    """
    Runs one simulation at a time.

    :param emit:
        Callback receiving each outbound HostMessage. When None, messages are put on ``outbox``.

    :param clock:
        Monotonic time source in seconds used for pacing.

    :param tick_interval:
        Timer period of the worker thread, in seconds.

    :param max_steps_per_frame:
        Cap on the days simulated by one tick.

    :param engine_clock:
        Optional wall-clock source handed to each engine (the datetime of day 0).
    """

    def __init__(
        self,
        emit: Callable[[HostMessage], None] = None,
        clock: Callable[[], float] = time.monotonic,
        tick_interval: float = UPDATE_INTERVAL_SECONDS,
        max_steps_per_frame: int = MAX_STEPS_PER_FRAME,
        engine_clock=None,
    ):
        self._emit = emit
        self.outbox = queue.Queue()
        self.tick_interval = tick_interval
        self._frame_clock = FrameClock(clock, max_steps_per_frame)
        self._engine_clock = engine_clock

        self._engine = None
        self._timer_active = False
        self._speed = 1.0
        self._last_event_sequence = 0

        self._commands = queue.Queue()
        self._shutdown = threading.Event()
        self._worker = None

    @property
    def engine(self) -> Optional[SimulationEngine]:
        return self._engine

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def is_ticking(self) -> bool:
        return self._timer_active

    # -------------------- messaging --------------------

    def _send(self, message: HostMessage) -> None:
        if self._emit is None:
            self.outbox.put(message)
        else:
            self._emit(message)

    def _send_state_update(self) -> None:
        state = serialize_state(self._engine.state)
        self._send(HostMessage(MessageType.STATE_UPDATE, state=state))

    def _send_error(self, error: str) -> None:
        self._send(HostMessage(MessageType.ERROR, error=error))

    def _flush_events(self) -> None:
        for event in self._engine.events_since(self._last_event_sequence):
            self._send(HostMessage(MessageType.EVENT, event=serialize_event(event)))
        self._last_event_sequence = self._engine.last_event_sequence

    def drain(self) -> list:
        """
        All queued outbound messages, oldest first.
        """
        messages = []
        while True:
            try:
                messages.append(self.outbox.get_nowait())
            except queue.Empty:
                return messages

    # -------------------- commands --------------------

    def handle_command(self, command) -> None:
        """
        Apply one command. Malformed commands and invalid configurations produce an ERROR message
        and leave the run untouched; any other failure stops the run.
        Call it directly only while the worker thread is not running.
        """
        try:
            command = HostCommand.from_dict(command)
            handlers = {
                CommandType.START: self._handle_start,
                CommandType.PAUSE: self._handle_pause,
                CommandType.RESUME: self._handle_resume,
                CommandType.STOP: self._handle_stop,
                CommandType.SET_SPEED: self._handle_set_speed,
                CommandType.UPDATE_CONFIG: self._handle_update_config,
            }
            handlers[command.type](command)
        except TbdemicError as error:
            logger.warning("Rejected command: %s", error)
            self._send_error(str(error))
        except Exception as error:
            self._fail(error)

    def _handle_start(self, command: HostCommand) -> None:
        if command.config is None:
            raise CommandError("START command requires a config object")
        config = command.config
        if not isinstance(config, SimulationConfig):
            config = SimulationConfig.from_dict(config)

        self._handle_stop()
        self._engine = SimulationEngine(config, clock=self._engine_clock)
        if _is_number(command.speed):
            self._speed = self._engine.set_speed(command.speed)
        else:
            self._engine.set_speed(self._speed)
        self._engine.start()

        self._last_event_sequence = 0
        self._frame_clock.restart()
        self._timer_active = True
        logger.info("Host started simulation '%s' at speed %.1f", config.id, self._speed)
        self._send_state_update()

    def _handle_pause(self, command: HostCommand = None) -> None:
        if self._engine is None or self._engine.status != SimulationStatus.RUNNING:
            logger.warning("Ignoring PAUSE: no running simulation")
            return
        self._engine.pause()
        self._timer_active = False
        self._send_state_update()

    def _handle_resume(self, command: HostCommand = None) -> None:
        if self._engine is None or self._engine.status != SimulationStatus.PAUSED:
            logger.warning("Ignoring RESUME: no paused simulation")
            return
        self._engine.resume()
        self._frame_clock.restart()
        self._timer_active = True
        self._send_state_update()

    def _handle_stop(self, command: HostCommand = None) -> None:
        self._timer_active = False
        if self._engine is not None:
            logger.info("Host stopped simulation '%s'", self._engine.config.id)
        self._engine = None
        self._last_event_sequence = 0

    def _handle_set_speed(self, command: HostCommand) -> None:
        if not _is_number(command.speed):
            raise CommandError("SET_SPEED command requires a speed number")
        self._speed = min(MAX_SPEED, max(MIN_SPEED, float(command.speed)))
        if self._engine is not None:
            self._engine.set_speed(self._speed)

    def _handle_update_config(self, command: HostCommand) -> None:
        if self._engine is None:
            raise CommandError("Cannot update config: no simulation running")
        if command.config is None:
            raise CommandError("UPDATE_CONFIG command requires a config object")
        self._engine.update_config(command.config)
        self._send_state_update()

    # -------------------- timer --------------------

    def tick(self) -> int:
        """
        One timer firing: run the due batch of steps, flushing new events after each step, then
        emit one state update. On completion the final state and COMPLETE are emitted and the
        timer halts.

        :return:
            Number of days simulated.
        """
        if not self._timer_active or self._engine is None:
            return 0

        try:
            steps = self._frame_clock.due_steps(self._speed)
            for step in range(steps):
                state = self._engine.step()
                self._flush_events()
                if state.status == SimulationStatus.COMPLETED:
                    self._complete()
                    return step + 1
            if steps:
                self._send_state_update()
            return steps
        except Exception as error:
            self._fail(error)
            return 0

    def _complete(self) -> None:
        self._timer_active = False
        self._send_state_update()
        self._send(HostMessage(MessageType.COMPLETE, state=serialize_state(self._engine.state)))
        logger.info("Simulation '%s' complete", self._engine.config.id)

    def _fail(self, error: Exception) -> None:
        logger.exception("Simulation failed, stopping run")
        self._handle_stop()
        self._send_error(str(error) or type(error).__name__)

    # -------------------- worker thread --------------------

    def submit(self, command) -> None:
        """
        Enqueue a command for the worker thread (or for ``process_pending``).
        """
        self._commands.put(command)

    def process_pending(self) -> int:
        """
        Apply all queued commands on the calling thread. Only for synchronous use: while the worker
        thread runs it owns the queue and the engine.

        :return:
            Number of commands applied.

        :raises SimulationError:
            If the worker thread is running.
        """
        if self._worker is not None and self._worker.is_alive():
            raise SimulationError("Queued commands are applied by the running worker thread.")
        count = 0
        while True:
            try:
                command = self._commands.get_nowait()
            except queue.Empty:
                return count
            self.handle_command(command)
            count += 1

    def _work(self) -> None:
        while not self._shutdown.is_set():
            try:
                command = self._commands.get(timeout=self.tick_interval)
            except queue.Empty:
                command = None
            if command is not None:
                self.handle_command(command)
            self.tick()

    def start_worker(self) -> threading.Thread:
        if self._worker is not None and self._worker.is_alive():
            return self._worker
        self._shutdown.clear()
        self._worker = threading.Thread(target=self._work, name="tbdemic-host", daemon=True)
        self._worker.start()
        return self._worker

    def shutdown(self, timeout: float = None) -> None:
        """
        Stop the worker thread. A batch in flight finishes first.
        """
        self._shutdown.set()
        if self._worker is not None:
            self._worker.join(timeout)
            self._worker = None
        self._timer_active = False
