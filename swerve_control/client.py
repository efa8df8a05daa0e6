#!/usr/bin/env python3
"""
WebSocket bridge client for the swerve drive.

This module connects to a robot bridge (the process that owns the motor
controllers, encoders, gyro and camera pipeline, or an external simulator),
receives sensor snapshots, operator commands and position corrections, runs
one drive tick per sensor snapshot and sends the module targets back.

Messages are JSON text frames. Inbound:
    sensors       {timestamp, modules: [4 x {drive_position, drive_velocity,
                   turn_angle}], gyro: {connected, yaw, yaw_rate},
                   corrections: [{x, y, heading?, timestamp, confidence}]}
    drive         {x, y, rot, field_relative?, rate_limit?}
    cross | stop | zero_heading
    reset_pose    {x, y, heading}
Outbound (one per sensors message):
    targets       {timestamp, modules: [4 x {speed, angle}],
                   pose: {x, y, heading}, zero_gyro}
"""

import asyncio
import json
import logging
import math
import signal
from typing import Any, Dict, List, Optional, Union

import websockets

from .backends import BridgeGyroIO, BridgeModuleIO, GyroInputs, ModuleInputs, create_backends
from .config import (
    TERM_BLUE,
    TERM_RESET,
    WS_MAX_RETRY_DELAY_SECONDS,
    WS_RETRY_DELAY_SECONDS,
    WS_TIMEOUT_SECONDS,
    WS_URI,
)
from .data_collector import DataCollector
from .drive import SwerveDrive
from .geometry import Correction, Pose2D
from .modes import RobotMode


class CustomFormatter(logging.Formatter):
    """Logging formatter that prints INFO messages bare.

    WARNING, ERROR and DEBUG messages keep their timestamp and level.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, show all levels with timestamps. If False, show INFO
                 without timestamps and WARNING/ERROR with timestamps.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)


def parse_correction(data: Dict[str, Any]) -> Correction:
    """Build a Correction from its JSON form.

    Raises:
        KeyError: If x, y or timestamp is missing.
        ValueError/TypeError: If a field is not numeric.
    """
    return Correction(
        pose=Pose2D(float(data["x"]), float(data["y"]), float(data.get("heading", 0.0))),
        timestamp=float(data["timestamp"]),
        confidence=float(data.get("confidence", 1.0)),
    )


class SwerveBridgeClient:
    """Runs the swerve drive against a WebSocket robot bridge.

    Attributes:
        uri: WebSocket URI to connect to.
        drive: The swerve drive, assembled with REAL (bridge) backends.
        data_collector: Optional per-run CSV recorder.
        command: Latest operator command, applied on every tick.
        should_stop: Flag indicating whether to stop the control loop.
    """

    def __init__(self, uri: str, data_collector: Optional[DataCollector] = None) -> None:
        """Initialize the bridge client.

        Args:
            uri: WebSocket URI (must start with ws:// or wss://).
            data_collector: Recorder for poses, targets and corrections.

        Raises:
            ValueError: If URI format is invalid.
        """
        if not uri or not uri.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URI: {uri}. Must start with 'ws://' or 'wss://'")

        self.uri: str = uri
        self.should_stop: bool = False
        self.data_collector = data_collector

        backends = create_backends(RobotMode.REAL)
        self.module_ios: List[BridgeModuleIO] = backends.modules
        self.gyro_io: BridgeGyroIO = backends.gyro
        self.drive = SwerveDrive(backends)

        # Operator command latched between drive messages; None means hold still
        self.command: Optional[Dict[str, Any]] = None
        self.cross: bool = False

    def process_sensor_message(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Feed a sensor snapshot through one drive tick.

        Args:
            data: Parsed sensors message.

        Returns:
            The targets message to send back.

        Raises:
            KeyError, TypeError, ValueError: On malformed sensor data.
        """
        timestamp = float(data["timestamp"])
        if not math.isfinite(timestamp):
            raise ValueError(f"Non-finite sensor timestamp: {timestamp}")

        modules = data["modules"]
        if not isinstance(modules, list):
            raise TypeError(f"Invalid modules data type: expected list, got {type(modules)}")
        if len(modules) != len(self.module_ios):
            raise ValueError(f"Expected {len(self.module_ios)} module readings, got {len(modules)}")
        for io, reading in zip(self.module_ios, modules):
            io.push(
                ModuleInputs(
                    drive_position=float(reading["drive_position"]),
                    drive_velocity=float(reading["drive_velocity"]),
                    turn_angle=float(reading["turn_angle"]),
                )
            )

        gyro = data.get("gyro")
        if gyro is not None and not isinstance(gyro, dict):
            logging.warning(f"Invalid gyro data type: expected object, got {type(gyro)}")
            gyro = None
        if gyro is not None:
            self.gyro_io.push(
                GyroInputs(
                    connected=bool(gyro.get("connected", False)),
                    yaw=float(gyro.get("yaw", 0.0)),
                    yaw_rate=float(gyro.get("yaw_rate", 0.0)),
                )
            )
        else:
            self.gyro_io.push(GyroInputs(connected=False))

        for item in data.get("corrections", []):
            try:
                correction = parse_correction(item)
            except (KeyError, TypeError, ValueError) as e:
                logging.warning(f"Skipping malformed correction {item}: {e}")
                continue
            self.drive.add_correction(correction)
            if self.data_collector:
                self.data_collector.log_correction(correction)

        pose = self.drive.periodic(timestamp)

        if self.cross:
            targets = self.drive.set_cross()
        elif self.command is None:
            targets = self.drive.stop()
        else:
            targets = self.drive.drive(
                self.command["x"],
                self.command["y"],
                self.command["rot"],
                self.command["field_relative"],
                self.command["rate_limit"],
                timestamp,
            )

        if self.data_collector:
            self.data_collector.log_pose(timestamp, pose)
            self.data_collector.log_targets(timestamp, targets)

        return {
            "message_type": "targets",
            "timestamp": timestamp,
            "modules": [{"speed": t.speed, "angle": t.angle} for t in targets],
            "pose": pose.to_dict(),
            "zero_gyro": self.gyro_io.take_zero_request(),
        }

    def process_drive_message(self, data: Dict[str, Any]) -> None:
        """Latch a new operator command."""
        self.command = {
            "x": max(-1.0, min(1.0, float(data["x"]))),
            "y": max(-1.0, min(1.0, float(data["y"]))),
            "rot": max(-1.0, min(1.0, float(data["rot"]))),
            "field_relative": bool(data.get("field_relative", True)),
            "rate_limit": bool(data.get("rate_limit", True)),
        }
        self.cross = False

    def parse_and_route_message(self, message: Union[str, bytes]) -> Optional[Dict[str, Any]]:
        """Parse an incoming message and route it to the matching handler.

        Args:
            message: Raw JSON message string or bytes from WebSocket.

        Returns:
            A reply to send, or None.
        """
        try:
            if isinstance(message, bytes):
                message = message.decode("utf-8")
            data = json.loads(message)

            if not isinstance(data, dict):
                logging.warning(f"Invalid message type: expected JSON object, got {type(data)}")
                return None

            message_type = data.get("message_type")

            if message_type == "sensors":
                return self.process_sensor_message(data)
            elif message_type == "drive":
                self.process_drive_message(data)
            elif message_type == "cross":
                self.cross = True
            elif message_type == "stop":
                self.command = None
                self.cross = False
            elif message_type == "zero_heading":
                self.drive.zero_heading()
            elif message_type == "reset_pose":
                self.drive.reset_pose(
                    Pose2D(float(data["x"]), float(data["y"]), float(data.get("heading", 0.0)))
                )
            else:
                logging.debug(f"Received unknown message: {json.dumps(data)}")

        except json.JSONDecodeError as e:
            logging.error(f"Error parsing JSON: {e}")
        except (KeyError, TypeError, ValueError) as e:
            logging.error(f"Error processing message data: {e}")
        except Exception as e:
            logging.error(f"Unexpected error processing message: {e}", exc_info=True)
        return None

    async def run_control_loop(self) -> None:
        """Connect to the bridge and run the control loop.

        Maintains a connection with automatic retry and exponential backoff
        until should_stop is set.
        """
        retry_delay = WS_RETRY_DELAY_SECONDS

        while not self.should_stop:
            try:
                async with websockets.connect(self.uri) as websocket:
                    logging.info(f"{TERM_BLUE}✓ Connected to bridge{TERM_RESET}")
                    retry_delay = WS_RETRY_DELAY_SECONDS

                    while not self.should_stop:
                        try:
                            message = await asyncio.wait_for(
                                websocket.recv(), timeout=WS_TIMEOUT_SECONDS
                            )
                        except asyncio.TimeoutError:
                            logging.debug("No message from bridge within timeout")
                            continue

                        reply = self.parse_and_route_message(message)
                        if reply is not None:
                            await websocket.send(json.dumps(reply))

            except websockets.exceptions.ConnectionClosed:
                logging.warning("Connection closed by bridge")
            except (OSError, websockets.exceptions.WebSocketException) as e:
                logging.error(f"Connection error: {e}")

            if self.should_stop:
                break
            logging.info(f"Retrying in {retry_delay} seconds...")
            await asyncio.sleep(retry_delay)
            retry_delay = min(retry_delay * 2, WS_MAX_RETRY_DELAY_SECONDS)

    def stop(self) -> None:
        """Signal the client to stop."""
        self.should_stop = True


async def main(uri: str = WS_URI, output_dir: Optional[str] = None) -> None:
    """Run the bridge client until interrupted.

    Args:
        uri: WebSocket URI of the robot bridge.
        output_dir: If given, record the run under this directory.
    """
    collector = DataCollector(output_dir=output_dir) if output_dir is not None else None
    # Validates the URI before any file is opened
    client = SwerveBridgeClient(uri, data_collector=collector)
    loop = asyncio.get_running_loop()

    def signal_handler() -> None:
        logging.info("\nShutdown signal received...")
        client.stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    if collector:
        collector.setup()
    try:
        await client.run_control_loop()
    finally:
        if collector:
            collector.cleanup()
