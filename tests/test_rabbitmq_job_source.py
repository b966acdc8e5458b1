from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from pika.exceptions import AMQPConnectionError

from transcode_worker.config import QueueConfig, RabbitMQConfig
from transcode_worker.domain import QueueMessage
from transcode_worker.exceptions import AckError
from transcode_worker.infrastructure import RabbitMQJobSource


@pytest.fixture
def config():
    return RabbitMQConfig(host="rabbitmq", user="guest", password="guest")


def test_receive_next_empty_queue(config) -> None:
    channel = MagicMock()
    channel.basic_get.return_value = (None, None, None)

    assert RabbitMQJobSource(channel, config).receive_next() == []
    channel.basic_get.assert_called_once_with(queue="transcode_jobs", auto_ack=False)


def test_receive_next_wraps_delivery(config) -> None:
    channel = MagicMock()
    method = SimpleNamespace(delivery_tag=7, routing_key="transcode_jobs")
    properties = SimpleNamespace(headers={"x-delivery-count": 2}, message_id="abc")
    channel.basic_get.return_value = (method, properties, b'{"key": "a.mp4"}')

    [message] = RabbitMQJobSource(channel, config).receive_next()

    assert message.receipt_handle == "7"
    assert message.body == '{"key": "a.mp4"}'
    assert message.attributes["delivery_count"] == 2
    assert message.attributes["max_delivery_count"] == 3


def test_receive_error_is_reported_as_empty_queue(config) -> None:
    channel = MagicMock()
    channel.basic_get.side_effect = AMQPConnectionError("connection lost")

    assert RabbitMQJobSource(channel, config).receive_next() == []


def test_acknowledge_and_release_use_delivery_tag(config) -> None:
    channel = MagicMock()
    source = RabbitMQJobSource(channel, config)
    message = QueueMessage(receipt_handle="7", body="{}")

    source.acknowledge(message)
    source.release(message)

    channel.basic_ack.assert_called_once_with(delivery_tag=7)
    channel.basic_nack.assert_called_once_with(delivery_tag=7)


def test_acknowledge_failure_raises_ack_error(config) -> None:
    channel = MagicMock()
    channel.basic_ack.side_effect = AMQPConnectionError("connection lost")

    with pytest.raises(AckError):
        RabbitMQJobSource(channel, config).acknowledge(
            QueueMessage(receipt_handle="7", body="{}")
        )


def test_setup_declares_job_queue_with_dead_letter_queue(config) -> None:
    channel = MagicMock()

    RabbitMQJobSource(channel, config).setup()

    channel.queue_declare.assert_any_call(queue="transcode_jobs_dlq", durable=True)
    channel.queue_declare.assert_any_call(
        queue="transcode_jobs",
        durable=True,
        arguments={
            "x-queue-type": "quorum",
            "x-delivery-limit": 3,
            "x-dead-letter-exchange": "",
            "x-dead-letter-routing-key": "transcode_jobs_dlq",
        },
    )
    channel.exchange_declare.assert_not_called()
    channel.queue_bind.assert_not_called()


def test_setup_binds_to_configured_exchange() -> None:
    channel = MagicMock()
    config = RabbitMQConfig(
        host="rabbitmq",
        user="guest",
        password="guest",
        exchange_name="uploads",
        binding_key="video.uploaded",
        queue_config=QueueConfig(name="jobs", max_delivery_count=5, dlq_name="dead"),
    )

    RabbitMQJobSource(channel, config).setup()

    channel.queue_bind.assert_called_once_with(
        queue="jobs", exchange="uploads", routing_key="video.uploaded"
    )
    assert channel.queue_declare.call_args_list[-1].kwargs["arguments"] == {
        "x-queue-type": "quorum",
        "x-delivery-limit": 5,
        "x-dead-letter-exchange": "",
        "x-dead-letter-routing-key": "dead",
    }


def test_setup_skips_binding_without_binding_key() -> None:
    channel = MagicMock()
    config = RabbitMQConfig(
        host="rabbitmq", user="guest", password="guest", exchange_name="uploads"
    )

    RabbitMQJobSource(channel, config).setup()

    channel.queue_bind.assert_not_called()
