"""
Trigger envelopes and invocation response.

Accepted payloads:
  EventBridge "Object Created":  {"detail": {"bucket": {"name"}, "object": {"key"}}}
  S3 notification:               {"Records": [{"s3": {"bucket": {"name"}, "object": {"key"}}}]}
  SQS-wrapped S3 notification:   {"Records": [{"eventSource": "aws:sqs", "body": "<json>"}]}
"""
from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from webp_derivatives.exceptions import InvalidEvent


class BucketInfo(BaseModel):
    name: str = ""


class ObjectInfo(BaseModel):
    key: str = ""


class EventDetail(BaseModel):
    bucket: BucketInfo
    object: ObjectInfo


class EventBridgeEvent(BaseModel):
    """EventBridge S3 "Object Created" event."""

    model_config = ConfigDict(extra="ignore")

    detail: EventDetail


class S3Entity(BaseModel):
    bucket: BucketInfo
    object: ObjectInfo


class S3EventRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    s3: S3Entity


class SQSRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    event_source: str = Field(alias="eventSource")
    body: str = "{}"


class ObjectRef(BaseModel):
    """(bucket, raw key) pair as delivered; the key is still URL-encoded."""

    bucket: str
    raw_key: str


class Response(BaseModel):
    message: str
    results: list[dict] = Field(default_factory=list)


def _s3_records(records: object) -> list[ObjectRef]:
    if not isinstance(records, list):
        raise InvalidEvent("Records is not a list")
    refs: list[ObjectRef] = []
    for record in records:
        if isinstance(record, dict) and record.get("eventSource") == "aws:sqs":
            # SQS wrapper: unwrap the S3 notification from the message body
            sqs_record = SQSRecord.model_validate(record)
            try:
                body = json.loads(sqs_record.body)
            except json.JSONDecodeError as exc:
                raise InvalidEvent("SQS body is not JSON") from exc
            if not isinstance(body, dict):
                raise InvalidEvent("SQS body is not an S3 notification")
            refs.extend(_s3_records(body.get("Records", [])))
            continue
        s3_record = S3EventRecord.model_validate(record)
        refs.append(ObjectRef(bucket=s3_record.s3.bucket.name, raw_key=s3_record.s3.object.key))
    return refs


def parse_event(event: dict) -> list[ObjectRef]:
    """Extract every (bucket, raw key) referenced by ``event``."""
    if not isinstance(event, dict):
        raise InvalidEvent("event is not an object")
    try:
        if "detail" in event:
            detail = EventBridgeEvent.model_validate(event).detail
            return [ObjectRef(bucket=detail.bucket.name, raw_key=detail.object.key)]
        if "Records" in event:
            return _s3_records(event["Records"])
    except ValidationError as exc:
        raise InvalidEvent(str(exc)) from exc
    raise InvalidEvent("no detail or Records")
