# core/topic_router.py
import logging
from typing import Iterable, List

from config.settings import settings
from models.disruption import Disruption

logger = logging.getLogger(__name__)


class TopicRouter:
    """
    Maps a disruption to the push topics it must be published to.

    - the global topic is always included
    - all_routes=True adds every known route topic
    - otherwise only known route ids from impacted_routes are added

    Output order is fixed: global topic first, then route topics in configured order.
    """

    def __init__(self, global_topic: str, route_topics: Iterable[str]):
        self.global_topic = global_topic
        self.route_topics: List[str] = [t for t in route_topics if t != global_topic]

    @property
    def all_topics(self) -> List[str]:
        return [self.global_topic, *self.route_topics]

    def topics_for(self, disruption: Disruption) -> List[str]:
        if disruption.all_routes:
            return self.all_topics

        impacted = set(disruption.impacted_routes)
        unknown = sorted(impacted.difference(self.route_topics))
        if unknown:
            logger.warning("Disruption %s: ignoring unknown route ids %s", disruption.id, unknown)

        topics = [self.global_topic] + [t for t in self.route_topics if t in impacted]
        if impacted and len(topics) == 1:
            logger.warning(
                "Disruption %s names routes %s but none map to a topic; using %s only",
                disruption.id, sorted(impacted), self.global_topic,
            )
        return topics


def default_router() -> TopicRouter:
    return TopicRouter(settings.GLOBAL_TOPIC, settings.route_topics())
