"""Consumer for ledger payment events."""

from typing import Any, Dict, List, Optional

import structlog

from shared.framework.consumer import ConsumerConfig, KafkaConsumer
from shared.schemas.events import PaymentEvent
from shared.utils.errors import ValidationError


logger = structlog.get_logger(__name__)


class PaymentEventConsumer:
    """Decodes payment messages from Kafka and enqueues them for aggregation."""

    def __init__(self, config, aggregation, consumer: Optional[KafkaConsumer] = None):
        self.config = config
        self.aggregation = aggregation
        self.events_enqueued = 0
        self.events_skipped = 0
        self.consumer = consumer or KafkaConsumer(
            ConsumerConfig(
                topics=[config.payments_topic],
                group_id=config.kafka_group_id,
                auto_offset_reset=config.kafka.auto_offset_reset,
                enable_auto_commit=config.kafka.enable_auto_commit,
                max_poll_records=config.kafka.max_poll_records,
                session_timeout_ms=config.kafka.session_timeout_ms,
            ),
            config.kafka,
            self.handle_messages,
        )

    async def start(self) -> None:
        await self.consumer.start()

    async def stop(self) -> None:
        await self.consumer.stop()

    async def handle_messages(self, messages: List[Dict[str, Any]]) -> None:
        """Enqueue every decodable payment; log and skip the rest."""
        for message in messages:
            payload = message.get("payload")
            try:
                if not isinstance(payload, dict):
                    raise ValidationError("Payment message is not a JSON object", value=type(payload).__name__)
                event = PaymentEvent.from_dict(payload)
            except ValidationError as e:
                self.events_skipped += 1
                logger.warning(
                    "Skipping invalid payment message",
                    error=str(e),
                    field=e.field,
                    topic=message.get("topic"),
                    partition=message.get("partition"),
                    offset=message.get("offset"),
                )
                continue

            self.aggregation.enqueue(event)
            self.events_enqueued += 1
