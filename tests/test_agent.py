"""Tests for the agent lifecycle and end-to-end delivery."""

import threading
import time

import pytest

from aino_agent import AinoAgent
from aino_agent.config import AgentConfig
from aino_agent.core.errors import (
    AgentClosedError,
    AgentNotStartedError,
    AlreadyStartedError,
    AlreadyStoppedError,
    SignalLostError,
    StopTimeoutError,
)
from aino_agent.orchestrator import AgentState, create_agent
from aino_agent.sender import HTTPSender
from conftest import RecordingSender, make_transaction, wait_until


def test_start_twice_is_rejected(agent_config, sender):
    agent = AinoAgent(agent_config, sender=sender)
    agent.start()

    with pytest.raises(AlreadyStartedError):
        agent.start()

    agent.stop()

    with pytest.raises(AlreadyStartedError):
        agent.start()


def test_stop_before_start_is_rejected(agent_config, sender):
    agent = AinoAgent(agent_config, sender=sender)

    with pytest.raises(AgentNotStartedError):
        agent.stop()

    assert agent.state is AgentState.CREATED


def test_stop_twice_is_rejected(agent_config, sender):
    agent = AinoAgent(agent_config, sender=sender)
    agent.start()
    agent.stop()

    with pytest.raises(AlreadyStoppedError):
        agent.stop()

    assert agent.state is AgentState.STOPPED


def test_submit_after_stop_is_rejected(agent_config, sender):
    agent = AinoAgent(agent_config, sender=sender)
    agent.start()
    agent.stop()

    with pytest.raises(AgentClosedError):
        agent.submit(make_transaction())


def test_submissions_before_start_are_delivered(agent_config, sender):
    agent = AinoAgent(agent_config, sender=sender)
    agent.submit(make_transaction(1))
    agent.add_transaction(make_transaction(2))

    agent.start()
    agent.stop()

    assert [t.timestamp for t in sender.transactions] == [1, 2]


def test_stop_drains_every_queued_batch():
    sender = RecordingSender(delay=0.01)
    agent = AinoAgent(_config(), sender=sender)
    for i in range(1200):
        agent.submit(make_transaction(i))

    agent.start()
    agent.stop()

    assert sender.sizes == [500, 500, 200]
    assert [t.timestamp for t in sender.transactions] == list(range(1200))
    assert agent.get_stats()["loop"]["total_transactions_sent"] == 1200


def test_concurrent_producers_before_start_lose_nothing(agent_config, sender):
    agent = AinoAgent(agent_config, sender=sender)
    barrier = threading.Barrier(2)

    def produce(name):
        barrier.wait()
        for i in range(50):
            agent.submit(make_transaction(i, flow_id=name))

    producers = [threading.Thread(target=produce, args=(name,)) for name in ("producer-1", "producer-2")]
    for producer in producers:
        producer.start()
    for producer in producers:
        producer.join()

    agent.start()
    agent.stop()

    received = [(t.flow_id, t.timestamp) for t in sender.transactions]
    assert len(received) == 100
    assert set(received) == {(name, i) for name in ("producer-1", "producer-2") for i in range(50)}

    # Each producer's own submissions keep their order
    for name in ("producer-1", "producer-2"):
        assert [i for flow_id, i in received if flow_id == name] == list(range(50))


def test_concurrent_producers_while_running(sender):
    agent = AinoAgent(_config(send_interval=5), sender=sender)
    agent.start()

    def produce(name):
        for i in range(200):
            agent.submit(make_transaction(i, flow_id=name))

    producers = [threading.Thread(target=produce, args=(f"producer-{n}",)) for n in range(4)]
    for producer in producers:
        producer.start()
    for producer in producers:
        producer.join()

    agent.stop()

    received = [(t.flow_id, t.timestamp) for t in sender.transactions]
    assert len(received) == 800
    assert len(set(received)) == 800
    assert all(size <= 500 for size in sender.sizes)


def test_transactions_are_flushed_on_interval_while_running(sender):
    agent = AinoAgent(_config(send_interval=20), sender=sender)
    agent.start()

    agent.submit(make_transaction(1))

    assert wait_until(lambda: sender.sizes == [1])
    assert agent.running

    agent.stop()
    assert sender.sizes == [1]


def test_failed_sends_do_not_reach_the_caller():
    sender = RecordingSender(fail=True)
    agent = AinoAgent(_config(), sender=sender)
    agent.start()
    for i in range(3):
        agent.submit(make_transaction(i))

    agent.stop()

    assert sender.sizes == [3]
    assert agent.get_stats()["loop"]["total_transactions_dropped"] == 3


def test_stop_timeout_leaves_drain_running():
    release = threading.Event()
    sender = RecordingSender(release=release)
    agent = AinoAgent(_config(), sender=sender)
    agent.start()
    agent.submit(make_transaction())

    with pytest.raises(StopTimeoutError):
        agent.stop(timeout=0.1)

    assert agent.state is AgentState.STOPPING

    release.set()
    agent.stop()

    assert agent.state is AgentState.STOPPED
    assert sender.sizes == [1]


def test_concurrent_stop_calls_wait_for_the_same_drain():
    release = threading.Event()
    sender = RecordingSender(release=release)
    agent = AinoAgent(_config(), sender=sender)
    agent.start()
    for i in range(3):
        agent.submit(make_transaction(i))

    errors = []

    def stop():
        try:
            agent.stop()
        except Exception as e:  # noqa: BLE001
            errors.append(e)

    stoppers = [threading.Thread(target=stop) for _ in range(2)]
    for stopper in stoppers:
        stopper.start()

    assert wait_until(lambda: agent.state is AgentState.STOPPING)
    time.sleep(0.1)
    assert all(stopper.is_alive() for stopper in stoppers)

    release.set()
    for stopper in stoppers:
        stopper.join(timeout=5.0)

    assert errors == []
    assert agent.state is AgentState.STOPPED
    assert sender.sizes == [3]


def test_dispatch_loop_failure_is_reported_on_stop(agent_config, sender, monkeypatch):
    agent = AinoAgent(agent_config, sender=sender)

    def broken(timeout=None):
        raise RuntimeError("queue is broken")

    monkeypatch.setattr(agent.queue, "take_available", broken)
    agent.start()

    with pytest.raises(SignalLostError):
        agent.stop()

    assert agent.state is AgentState.STOPPED
    with pytest.raises(AlreadyStoppedError):
        agent.stop()


def test_stop_logs_queued_message_count(agent_config, sender, log_messages):
    agent = AinoAgent(agent_config, sender=sender)
    agent.start()
    agent.stop()

    assert any(message.startswith("INFO | Stopping Aino.io agent with 0 queued messages") for message in log_messages)


def test_context_manager_starts_and_drains(agent_config, sender):
    with AinoAgent(agent_config, sender=sender) as agent:
        assert agent.running
        agent.submit(make_transaction(5))

    assert agent.state is AgentState.STOPPED
    assert [t.timestamp for t in sender.transactions] == [5]


def test_default_sender_uses_config(agent_config):
    agent = AinoAgent(agent_config)

    assert isinstance(agent.sender, HTTPSender)
    assert agent.sender.config.url == agent_config.url
    assert agent.sender.config.api_key == "test-key"
    assert "sender" in agent.get_stats()


def test_create_agent_warns_about_missing_api_key(sender, log_messages):
    agent = create_agent(_config(api_key=""), sender=sender)

    assert agent.state is AgentState.CREATED
    assert any("API key is required" in message for message in log_messages)


def test_end_to_end_with_http_sender(ingest_server):
    agent = AinoAgent(_config(url=ingest_server.url, api_key="secret"))
    agent.start()
    for i in range(3):
        agent.submit(make_transaction(i))

    agent.stop()

    assert len(ingest_server.requests) == 1
    request = ingest_server.requests[0]
    assert request["authorization"] == "apikey secret"
    assert [item["timestamp"] for item in request["body"]["transactions"]] == [0, 1, 2]


def _config(**overrides):
    values = {"url": "http://localhost/rest/v2/transaction", "api_key": "test-key", "send_interval": 60_000, "poll_interval": 0.01}
    values.update(overrides)
    return AgentConfig(**values)
