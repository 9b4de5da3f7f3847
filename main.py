"""
Relative positioning replay host.

Feeds recorded (or simulated) server messages through the resolver and
prints one JSON line per PlayerUpdated / PlayerRemoved event.

Input: JSON lines, one inbound message per line (see
relpos_core.proto.messages.decode_message). Snapshot lines may carry a
"heading" field; --heading overrides it.
"""

import sys
import signal
import logging
import argparse
from typing import Iterable, Optional, TextIO

import config
from relpos_core.localization import (
    RelativePositionResolver,
    ResolverConfig,
    PositioningContext,
    CalibrationConfig,
)
from relpos_core.proto import (
    SnapshotMessage,
    PlayerLeftMessage,
    SnapshotParseError,
    UnknownMessageError,
    decode_message,
    encode,
)
from relpos_core.simulation import simulate_snapshots

logging.basicConfig(
    level=getattr(logging, config.LOGGING_CONFIG["level"]),
    format=config.LOGGING_CONFIG["format"]
)
logger = logging.getLogger(__name__)


class ReplayHost:
    """Owns one positioning context and drives it from a message stream."""

    def __init__(
        self,
        player_id: Optional[str] = None,
        heading_override: Optional[float] = None,
        output: Optional[TextIO] = None
    ):
        self.running = False
        self.heading_override = heading_override
        self.output = output if output is not None else sys.stdout

        resolver_config = ResolverConfig(
            calibration=CalibrationConfig(
                required_samples=config.CALIBRATION_CONFIG["required_samples"]
            ),
            local_player_id=player_id,
        )
        self.context = PositioningContext.create(resolver_config)
        self.resolver = RelativePositionResolver(self.context, resolver_config)

        self.context.dispatcher.subscribe_updated(self._emit)
        self.context.dispatcher.subscribe_removed(self._emit)

        self.line_count = 0

    def _emit(self, event):
        self.output.write(encode(event.to_dict()) + "\n")

    def _signal_handler(self, signum, frame):
        logger.info(f"Received signal {signum}, stopping...")
        self.running = False

    def handle_line(self, line: str):
        """Decode and dispatch one inbound message line."""
        line = line.strip()
        if not line:
            return

        self.line_count += 1
        try:
            message = decode_message(line, self.resolver.config.local_player_id)
        except UnknownMessageError as e:
            self.context.metrics.increment_drop('unknown_message')
            logger.warning(f"Line {self.line_count}: {e}")
            return
        except SnapshotParseError as e:
            self.context.metrics.increment_drop('parse_error')
            logger.warning(f"Line {self.line_count}: {e}")
            return

        if isinstance(message, PlayerLeftMessage):
            self.resolver.remove_player(message.player_id)
        elif isinstance(message, SnapshotMessage):
            heading = self.heading_override
            if heading is None:
                heading = message.heading_degrees
            self.resolver.process(message.snapshot, heading)

    def run(self, lines: Iterable[str]):
        """Process lines until exhausted or interrupted."""
        previous = {
            sig: signal.signal(sig, self._signal_handler)
            for sig in (signal.SIGINT, signal.SIGTERM)
        }

        self.running = True
        try:
            for line in lines:
                if not self.running:
                    break
                self.handle_line(line)
        finally:
            self.running = False
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        logger.info(f"Replay finished: {self.line_count} messages, "
                    f"{self.context.metrics.get_counter('player_updates')} updates")

    def run_simulation(self, ticks: int, noise_std_m: float, seed: Optional[int]):
        """Drive the resolver from a simulated session."""
        local_id = self.resolver.config.local_player_id or "local"
        heading = self.heading_override if self.heading_override is not None else 0.0

        for snapshot in simulate_snapshots(
            config.SIMULATION_CONFIG, local_id, ticks,
            noise_std_m=noise_std_m, seed=seed
        ):
            self.resolver.process(snapshot, heading)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Relative positioning replay host')
    parser.add_argument('input', nargs='?', default='-',
                        help='JSON-lines message file (default: stdin)')
    parser.add_argument('--player-id', type=str, default=config.PLAYER_CONFIG["player_id"],
                        help='Local player ID (default: localPlayerId from each snapshot)')
    parser.add_argument('--heading', type=float, default=config.REPLAY_CONFIG["default_heading_deg"],
                        help='Fixed heading in degrees, overrides per-line headings')
    parser.add_argument('--simulate', type=int, default=None, metavar='TICKS',
                        help='Ignore input and run a simulated session')
    parser.add_argument('--noise', type=float, default=0.0,
                        help='GPS noise std (m) for --simulate')
    parser.add_argument('--seed', type=int, default=None,
                        help='RNG seed for --simulate')
    parser.add_argument('--summary', action='store_true',
                        default=config.REPLAY_CONFIG["print_summary"],
                        help='Print metrics summary on exit')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='Enable debug logging')

    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    host = ReplayHost(player_id=args.player_id, heading_override=args.heading)

    if args.simulate is not None:
        host.run_simulation(args.simulate, args.noise, args.seed)
    elif args.input == '-':
        host.run(sys.stdin)
    else:
        with open(args.input, 'r', encoding='utf-8') as f:
            host.run(f)

    if args.summary:
        host.context.metrics.print_summary()


if __name__ == "__main__":
    main()
