"""Parsing and validation of fully qualified topic names."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

DEFAULT_TENANT = "public"
DEFAULT_NAMESPACE = "default"

_NAMED_ENTITY_RE = re.compile(r"^[-=:.\w]+$")


class InvalidTopicNameError(ValueError):
    """Raised when a topic name cannot be parsed."""


class TopicDomain(str, Enum):
    """Durability domain encoded in the topic scheme."""

    PERSISTENT = "persistent"
    NON_PERSISTENT = "non-persistent"


@dataclass(frozen=True)
class TopicName:
    """A parsed ``domain://tenant/namespace/topic`` identifier.

    Legacy names carry a cluster segment between tenant and namespace
    (``domain://tenant/cluster/namespace/topic``).
    """

    domain: TopicDomain
    tenant: str
    namespace: str
    local_name: str
    cluster: str | None = None

    @classmethod
    def parse(cls, raw: str) -> "TopicName":
        """Parse ``raw`` accepting short, three-part and fully qualified forms."""

        if raw is None or not raw.strip():
            raise InvalidTopicNameError("Topic name must not be empty")
        text = raw.strip()

        if "://" not in text:
            parts = text.split("/")
            if len(parts) == 1:
                text = f"{TopicDomain.PERSISTENT.value}://{DEFAULT_TENANT}/{DEFAULT_NAMESPACE}/{text}"
            elif len(parts) == 3:
                text = f"{TopicDomain.PERSISTENT.value}://{text}"
            else:
                raise InvalidTopicNameError(
                    f"Invalid short topic name '{raw}', it should be in the format of "
                    "<tenant>/<namespace>/<topic> or <topic>"
                )

        scheme, _, rest = text.partition("://")
        try:
            domain = TopicDomain(scheme)
        except ValueError as exc:
            raise InvalidTopicNameError(
                f"Invalid topic domain '{scheme}' in '{raw}', expected one of "
                f"{sorted(d.value for d in TopicDomain)}"
            ) from exc

        segments = rest.split("/")
        if len(segments) == 3:
            tenant, namespace, local_name = segments
            cluster = None
        elif len(segments) >= 4:
            tenant, cluster, namespace = segments[:3]
            local_name = "/".join(segments[3:])
        else:
            raise InvalidTopicNameError(
                f"Invalid topic name '{raw}', expected {domain.value}://tenant/namespace/topic"
            )

        for label, value in (("tenant", tenant), ("cluster", cluster), ("namespace", namespace)):
            if value is None:
                continue
            if not _NAMED_ENTITY_RE.match(value):
                raise InvalidTopicNameError(
                    f"Invalid {label} '{value}' in topic name '{raw}'"
                )
        if not local_name:
            raise InvalidTopicNameError(f"Invalid topic name '{raw}': topic part is empty")

        return cls(
            domain=domain,
            tenant=tenant,
            namespace=namespace,
            local_name=local_name,
            cluster=cluster,
        )

    @property
    def is_v2(self) -> bool:
        return self.cluster is None

    @property
    def namespace_path(self) -> str:
        if self.cluster is None:
            return f"{self.tenant}/{self.namespace}"
        return f"{self.tenant}/{self.cluster}/{self.namespace}"

    def __str__(self) -> str:
        return f"{self.domain.value}://{self.namespace_path}/{self.local_name}"


def validate_topic_name(params: Sequence[str]) -> TopicName:
    """Validate positional command arguments holding exactly one topic name."""

    if len(params) != 1:
        raise InvalidTopicNameError(
            "Need to provide just 1 parameter: persistent://tenant/namespace/topic"
        )
    return TopicName.parse(params[0])


__all__ = [
    "DEFAULT_NAMESPACE",
    "DEFAULT_TENANT",
    "InvalidTopicNameError",
    "TopicDomain",
    "TopicName",
    "validate_topic_name",
]
