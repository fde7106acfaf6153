"""Example producer program for the Aino.io agent.

Starts the agent, spawns producer threads that each submit a transaction
every ``--interval`` seconds, and drains the agent on SIGINT/SIGTERM or once
every producer has submitted ``--count`` transactions.

Usage:
    python -m aino_agent --config-dir config --threads 2
"""

from __future__ import annotations

import argparse
import sys
import threading
from typing import List, Optional

from loguru import logger

from . import AgentClosedError, AgentConfig, AinoError, Status, Transaction, TransactionId, create_agent, load_config
from .config import LogSettings, setup_logging
from .core.signal_handler import SignalHandler
from .orchestrator import AinoAgent

FROM_APPLICATION = "FromApplicationName"
TO_APPLICATION = "ToApplicationName"
OPERATION = "OperationName"
INTEGRATION_SEGMENT = "IntegrationSegment"
FLOW_ID = "FlowId"
ID_TYPE = "IdType"
ID_VALUES = ["ID1", "ID2"]


def build_transaction() -> Transaction:
    """Build the sample transaction submitted by each producer."""
    transaction = Transaction.create(FROM_APPLICATION, TO_APPLICATION, OPERATION, Status.SUCCESS, INTEGRATION_SEGMENT, flow_id=FLOW_ID)
    transaction.add_id(TransactionId(id_type=ID_TYPE, values=list(ID_VALUES)))
    return transaction


def produce(agent: AinoAgent, stop_event: threading.Event, interval: float, count: Optional[int]) -> int:
    """Submit transactions until stopped or ``count`` is reached. Returns the number submitted."""
    submitted = 0

    while not stop_event.is_set() and (count is None or submitted < count):
        try:
            agent.submit(build_transaction())
        except AgentClosedError:
            break
        submitted += 1
        stop_event.wait(interval)

    return submitted


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="aino_agent", description="Send sample transactions to Aino.io")
    parser.add_argument("--config-dir", default="config", help="Directory with default.toml and overrides")
    parser.add_argument("--threads", type=int, default=2, help="Number of producer threads")
    parser.add_argument("--interval", type=float, default=0.05, help="Seconds between transactions per thread")
    parser.add_argument("--count", type=int, default=None, help="Transactions per thread (default: run until interrupted)")
    parser.add_argument("--stop-timeout", type=float, default=None, help="Seconds to wait for the drain on exit (default: wait until done)")
    parser.add_argument("--log-level", default="INFO", help="Log level")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None, config: Optional[AgentConfig] = None) -> int:
    args = parse_args(argv)
    setup_logging(LogSettings(level=args.log_level))

    try:
        config = config or load_config(args.config_dir)
    except AinoError as e:
        logger.error(f"Failed to load Aino.io configuration: {e}")
        return 1

    agent = create_agent(config)
    signal_handler = SignalHandler(agent, stop_timeout=args.stop_timeout)
    stop_event = signal_handler.shutdown_requested

    agent.start()

    producers = [threading.Thread(target=produce, args=(agent, stop_event, args.interval, args.count), daemon=True) for _ in range(args.threads)]
    for producer in producers:
        producer.start()
    for producer in producers:
        producer.join()

    return 0 if signal_handler.drain() else 1


if __name__ == "__main__":
    sys.exit(main())
