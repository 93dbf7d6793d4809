"""
Kafka consumer abstraction for async services.

Provides a high-level Kafka consumer that polls in a worker thread,
hands parsed message batches to an async handler and tracks counters.
"""

import asyncio
from typing import Optional, Callable, Any, Awaitable, Dict, List
from dataclasses import dataclass
import json

from confluent_kafka import Consumer, KafkaError, Message
import structlog

from .config import KafkaConfig


@dataclass
class ConsumerConfig:
    """Consumer configuration."""
    topics: List[str]
    group_id: str
    auto_offset_reset: str = "latest"
    enable_auto_commit: bool = True
    max_poll_records: int = 500
    session_timeout_ms: int = 30000
    heartbeat_interval_ms: int = 3000
    poll_timeout_seconds: float = 1.0


MessageHandler = Callable[[List[Dict[str, Any]]], Awaitable[None]]


class KafkaConsumer:
    """
    High-level Kafka consumer with async processing.

    Features:
    - Blocking poll kept off the event loop
    - Per-batch handler invocation
    - Message parsing with JSON fallback to text
    - Graceful shutdown
    """

    def __init__(
        self,
        config: ConsumerConfig,
        kafka_config: KafkaConfig,
        message_handler: MessageHandler,
        error_handler: Optional[Callable[[Exception], Awaitable[None]]] = None
    ):
        self.config = config
        self.kafka_config = kafka_config
        self.message_handler = message_handler
        self.error_handler = error_handler or self._default_error_handler

        self.logger = structlog.get_logger("kafka-consumer")
        self.consumer: Optional[Consumer] = None
        self.running = False
        self.task: Optional[asyncio.Task] = None

        # Metrics
        self.messages_processed = 0
        self.messages_failed = 0
        self.last_message_time = None

    def _create_consumer(self) -> Consumer:
        """Create Kafka consumer instance."""
        consumer_config = {
            'bootstrap.servers': self.kafka_config.bootstrap_servers,
            'group.id': self.config.group_id,
            'auto.offset.reset': self.config.auto_offset_reset,
            'enable.auto.commit': self.config.enable_auto_commit,
            'session.timeout.ms': self.config.session_timeout_ms,
            'heartbeat.interval.ms': self.config.heartbeat_interval_ms,
        }

        return Consumer(consumer_config)

    async def start(self) -> None:
        """Start the consumer."""
        if self.running:
            return

        self.logger.info(
            "Starting Kafka consumer",
            topics=self.config.topics,
            group_id=self.config.group_id
        )

        self.consumer = self._create_consumer()
        self.consumer.subscribe(self.config.topics)

        self.running = True
        self.task = asyncio.create_task(self._consume_loop())

    async def stop(self) -> None:
        """Stop the consumer."""
        if not self.running:
            return

        self.logger.info("Stopping Kafka consumer")

        self.running = False

        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass

        if self.consumer:
            self.consumer.close()

        self.logger.info("Kafka consumer stopped")

    async def _consume_loop(self) -> None:
        """Main consumption loop."""
        while self.running:
            try:
                messages = await asyncio.to_thread(
                    self.consumer.consume,
                    num_messages=self.config.max_poll_records,
                    timeout=self.config.poll_timeout_seconds,
                )

                if not messages:
                    continue

                await self.process_messages(messages)

            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.error("Consumer loop error", error=str(e), exc_info=True)
                await self.error_handler(e)
                await asyncio.sleep(1)  # Brief pause before retry

    async def process_messages(self, messages: List[Message]) -> None:
        """Parse a batch of raw messages and hand it to the handler."""
        processed_messages = []

        for message in messages:
            if message is None:
                continue

            if message.error():
                if message.error().code() == KafkaError._PARTITION_EOF:
                    # End of partition - normal condition
                    continue
                self.logger.error(
                    "Message error",
                    error=str(message.error()),
                    topic=message.topic(),
                    partition=message.partition(),
                    offset=message.offset()
                )
                self.messages_failed += 1
                continue

            processed_messages.append(self._parse_message(message))

        if not processed_messages:
            return

        try:
            await self.message_handler(processed_messages)
            self.messages_processed += len(processed_messages)
            self.last_message_time = asyncio.get_running_loop().time()

        except Exception as e:
            self.logger.error(
                "Message handler error",
                error=str(e),
                batch_size=len(processed_messages)
            )
            self.messages_failed += len(processed_messages)
            await self.error_handler(e)

    def _parse_message(self, message: Message) -> Dict[str, Any]:
        """Parse Kafka message to dictionary."""
        try:
            payload = json.loads(message.value().decode('utf-8'))
        except (json.JSONDecodeError, UnicodeDecodeError):
            # Fallback to raw text
            payload = message.value().decode('utf-8', errors='replace')

        return {
            "topic": message.topic(),
            "partition": message.partition(),
            "offset": message.offset(),
            "key": message.key().decode('utf-8') if message.key() else None,
            "payload": payload,
        }

    async def _default_error_handler(self, error: Exception) -> None:
        self.logger.error("Consumer error", error=str(error))

    def get_metrics(self) -> Dict[str, Any]:
        """Get consumer metrics."""
        return {
            "messages_processed": self.messages_processed,
            "messages_failed": self.messages_failed,
            "last_message_time": self.last_message_time,
            "running": self.running,
        }
