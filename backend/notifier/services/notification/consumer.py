"""Kafka 通知消费者

使用 FastStream KafkaBroker 订阅通知 topic，每条消息交给 handle_message 处理。
消费失败的消息只记录日志后丢弃，重试/死信由上游负责。
"""

from faststream.kafka import KafkaBroker
from faststream.kafka.annotations import KafkaMessage

from notifier.core.config import Settings
from notifier.core.logging import get_logger
from notifier.services.notification.dispatcher import NotificationDispatcher
from notifier.services.notification.inbound import handle_message

logger = get_logger("notification.consumer")


class NotificationConsumer:
    """Kafka 通知消费者"""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        *,
        bootstrap_servers: str,
        topics: list[str],
        group_id: str,
    ) -> None:
        self.dispatcher = dispatcher
        self.topics = topics
        self.group_id = group_id
        self.broker = KafkaBroker(bootstrap_servers)

        @self.broker.subscriber(*topics, group_id=group_id)
        async def on_notification(message: KafkaMessage) -> None:
            await handle_message(
                self.dispatcher,
                message.body,
                topic=message.raw_message.topic,
            )

    @classmethod
    def from_settings(
        cls, settings: Settings, dispatcher: NotificationDispatcher
    ) -> "NotificationConsumer":
        return cls(
            dispatcher,
            bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
            topics=settings.kafka_topics_list,
            group_id=settings.KAFKA_GROUP_ID,
        )

    async def start(self) -> None:
        await self.broker.start()
        logger.info("Kafka 消费者已启动", topics=self.topics, group_id=self.group_id)

    async def stop(self) -> None:
        await self.broker.close()
        logger.info("Kafka 消费者已关闭")
