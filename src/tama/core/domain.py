"""
Events flowing into the event loop, and the commands the session hands back.

Every dispatcher event carries the dispatch id and the target index captured
at submission time, so the session can drop events from an abandoned dispatch.
"""

from datetime import timedelta
from typing import Literal, TypedDict, Union

from tama.core.cancellation import CancelToken


class PartialEvent(TypedDict):
    type: Literal['partial']
    dispatch_id: int
    target: int
    text: str


class CompleteEvent(TypedDict):
    type: Literal['complete']
    dispatch_id: int
    target: int
    text: str
    duration: timedelta
    cancelled: bool
    degraded: bool


class FailureEvent(TypedDict):
    type: Literal['failure']
    dispatch_id: int
    target: int
    message: str
    duration: timedelta


class ModelSelectedEvent(TypedDict):
    type: Literal['model_selected']
    model: str
    loaded: bool


class ModelStatusEvent(TypedDict):
    type: Literal['model_status']
    model: str
    loaded: bool


class StatusErrorEvent(TypedDict):
    type: Literal['status_error']
    message: str


DispatchEvent = Union[PartialEvent, CompleteEvent, FailureEvent]

DomainEvent = Union[
    PartialEvent, CompleteEvent, FailureEvent,
    ModelSelectedEvent, ModelStatusEvent, StatusErrorEvent,
]


def partial(dispatch_id: int, target: int, text: str) -> PartialEvent:
    return {'type': 'partial', 'dispatch_id': dispatch_id, 'target': target, 'text': text}


def complete(
    dispatch_id: int,
    target: int,
    text: str,
    duration: timedelta,
    cancelled: bool = False,
    degraded: bool = False,
) -> CompleteEvent:
    return {
        'type': 'complete',
        'dispatch_id': dispatch_id,
        'target': target,
        'text': text,
        'duration': duration,
        'cancelled': cancelled,
        'degraded': degraded,
    }


def failure(dispatch_id: int, target: int, message: str, duration: timedelta) -> FailureEvent:
    return {
        'type': 'failure',
        'dispatch_id': dispatch_id,
        'target': target,
        'message': message,
        'duration': duration,
    }


# Side effects the session asks the event loop to perform.

class StartDispatchCommand(TypedDict):
    type: Literal['start_dispatch']
    dispatch_id: int
    target: int
    model: str
    history: list[dict[str, str]]
    token: CancelToken


class PersistModelCommand(TypedDict):
    type: Literal['persist_model']
    model: str


class PollModelCommand(TypedDict):
    type: Literal['poll_model']
    model: str


class QuitCommand(TypedDict):
    type: Literal['quit']


Command = Union[StartDispatchCommand, PersistModelCommand, PollModelCommand, QuitCommand]
