"""Linking created calls to contacts and companies.

HubSpot portals differ in which v4 association endpoints they accept, so each
batch is offered to three request shapes in order of preference:

1. ``batch/create`` with explicit association type ids,
2. ``batch/associate/default`` without type ids,
3. one ``associations/default`` PUT per pair.

The first two tiers fall through on :class:`HubspotError`; a failure in the
last tier propagates to the caller.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Union

from callsync.adapters.hubspot.client import HubspotClient, HubspotError
from callsync.domain.models import AssociationOutcome, AssociationPair, CallAssociations
from callsync.domain.stages import AssociationStatus, AssociationTypeId

LOGGER = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100
ASSOCIATION_CATEGORY = "HUBSPOT_DEFINED"


@dataclass(frozen=True)
class TypedBatchRequest:
    from_type: str
    to_type: str
    pairs: tuple[AssociationPair, ...]

    tier = "typed_batch"

    def inputs(self) -> list[dict[str, Any]]:
        return [
            {
                "from": {"id": pair.from_id},
                "to": {"id": pair.to_id},
                "types": [
                    {
                        "associationCategory": ASSOCIATION_CATEGORY,
                        "associationTypeId": int(pair.association_type_id),
                    }
                ],
            }
            for pair in self.pairs
        ]


@dataclass(frozen=True)
class DefaultBatchRequest:
    from_type: str
    to_type: str
    pairs: tuple[AssociationPair, ...]

    tier = "default_batch"

    def inputs(self) -> list[dict[str, Any]]:
        return [{"from": {"id": pair.from_id}, "to": {"id": pair.to_id}} for pair in self.pairs]


@dataclass(frozen=True)
class SingleDefaultRequest:
    from_type: str
    to_type: str
    pair: AssociationPair

    tier = "single_default"


AssociationRequest = Union[TypedBatchRequest, DefaultBatchRequest, SingleDefaultRequest]


class AssociationPipeline:
    def __init__(self, client: HubspotClient, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive.")
        self.client = client
        self.batch_size = batch_size

    def link_objects(
        self, from_type: str, to_type: str, pairs: Sequence[AssociationPair]
    ) -> list[AssociationOutcome]:
        outcomes: list[AssociationOutcome] = []
        for start in range(0, len(pairs), self.batch_size):
            batch = tuple(pairs[start : start + self.batch_size])
            outcomes.extend(self._link_batch(from_type, to_type, batch))
        return outcomes

    def link_grouped(
        self, links: Iterable[tuple[str, str, AssociationPair]]
    ) -> dict[tuple[str, str], list[AssociationOutcome]]:
        """Link pairs of mixed object types, one pipeline run per (from, to) group.

        Outcomes stay keyed by their group: object ids are only unique per type.
        """
        groups: dict[tuple[str, str], list[AssociationPair]] = {}
        for from_type, to_type, pair in links:
            groups.setdefault((from_type, to_type), []).append(pair)
        return {
            (from_type, to_type): self.link_objects(from_type, to_type, pairs)
            for (from_type, to_type), pairs in groups.items()
        }

    def link_call(
        self, call_id: str, contact_id: str | None = None, company_id: str | None = None
    ) -> CallAssociations:
        links: list[tuple[str, str, AssociationPair]] = []
        if contact_id:
            links.append(
                ("calls", "contacts", AssociationPair(call_id, contact_id, AssociationTypeId.CALL_TO_CONTACT))
            )
        if company_id:
            links.append(
                ("calls", "companies", AssociationPair(call_id, company_id, AssociationTypeId.CALL_TO_COMPANY))
            )
        if not links:
            return CallAssociations()
        grouped = self.link_grouped(links)
        return CallAssociations(
            contact=_find_outcome(grouped.get(("calls", "contacts"), []), contact_id),
            company=_find_outcome(grouped.get(("calls", "companies"), []), company_id),
        )

    def _link_batch(
        self, from_type: str, to_type: str, batch: tuple[AssociationPair, ...]
    ) -> list[AssociationOutcome]:
        batch_requests: list[AssociationRequest] = [
            TypedBatchRequest(from_type, to_type, batch),
            DefaultBatchRequest(from_type, to_type, batch),
        ]
        for request in batch_requests:
            try:
                return self._send(request)
            except HubspotError as exc:
                LOGGER.warning(
                    "%s association %s->%s failed (%s); trying next method",
                    request.tier,
                    from_type,
                    to_type,
                    exc,
                )
        outcomes: list[AssociationOutcome] = []
        for pair in batch:
            outcomes.extend(self._send(SingleDefaultRequest(from_type, to_type, pair)))
        return outcomes

    def _send(self, request: AssociationRequest) -> list[AssociationOutcome]:
        if isinstance(request, TypedBatchRequest):
            LOGGER.debug("Creating %d typed associations %s->%s", len(request.pairs), request.from_type, request.to_type)
            response = self.client.batch_create_associations(request.from_type, request.to_type, request.inputs())
            return _batch_outcomes(request.pairs, response)
        if isinstance(request, DefaultBatchRequest):
            LOGGER.debug("Creating %d default associations %s->%s", len(request.pairs), request.from_type, request.to_type)
            response = self.client.batch_associate_default(request.from_type, request.to_type, request.inputs())
            return _batch_outcomes(request.pairs, response)
        if isinstance(request, SingleDefaultRequest):
            pair = request.pair
            self.client.associate_default(request.from_type, pair.from_id, request.to_type, pair.to_id)
            return [AssociationOutcome(AssociationStatus.SUCCESS, pair.from_id, pair.to_id)]
        raise TypeError(f"Unsupported association request: {request!r}")


def _batch_outcomes(
    pairs: tuple[AssociationPair, ...], response: dict[str, Any]
) -> list[AssociationOutcome]:
    failed = _failed_target_ids(response)
    return [
        AssociationOutcome(
            AssociationStatus.ERROR if pair.to_id in failed else AssociationStatus.SUCCESS,
            pair.from_id,
            pair.to_id,
        )
        for pair in pairs
    ]


def _failed_target_ids(response: dict[str, Any]) -> set[str]:
    # Multi-status (207) responses list rejected inputs under "errors".
    failed: set[str] = set()
    for error in response.get("errors") or []:
        context = error.get("context") or {}
        for value in context.get("toObjectId") or []:
            failed.add(str(value))
    return failed


def _find_outcome(outcomes: list[AssociationOutcome], to_id: str | None) -> AssociationOutcome | None:
    if not to_id:
        return None
    for outcome in outcomes:
        if outcome.to_id == to_id:
            return outcome
    return None
