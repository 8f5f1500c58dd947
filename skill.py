"""
skill.py - Request dispatch for the weather skill.

Handlers are tried in order; the first whose predicate accepts the request
answers it. Anything a handler raises, and any request no handler accepts,
is answered by the error handler with a generic apology.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, NamedTuple

from dotenv import load_dotenv

import speech
from models import (
    OutputSpeech,
    Reprompt,
    RequestEnvelope,
    ResponseBody,
    ResponseEnvelope,
)
from user_store import InvalidUserIdError, UserStateStore, normalize_user_id
from verbosity import advance
from weather import WeatherFetchError, fetch_current_weather

# Load .env from project root
load_dotenv(dotenv_path=Path(__file__).parent / ".env")

WEATHER_LOCATION = os.getenv("WEATHER_LOCATION", "new york")
WEATHER_CITY_NAME = os.getenv("WEATHER_CITY_NAME", "New York")

WEATHER_INTENT = "GetWeatherIntent"

logger = logging.getLogger(__name__)


@dataclass
class SkillContext:
    store: UserStateStore
    location: str = WEATHER_LOCATION
    city: str = WEATHER_CITY_NAME


HandleFn = Callable[[RequestEnvelope, SkillContext], Awaitable[ResponseEnvelope]]


class RequestHandler(NamedTuple):
    name: str
    can_handle: Callable[[RequestEnvelope], bool]
    handle: HandleFn


def build_response(
    speak: str | None = None,
    reprompt: str | None = None,
    end_session: bool | None = None,
) -> ResponseEnvelope:
    body = ResponseBody(
        output_speech=OutputSpeech(text=speak) if speak is not None else None,
        reprompt=Reprompt(output_speech=OutputSpeech(text=reprompt)) if reprompt is not None else None,
        should_end_session=end_session,
    )
    return ResponseEnvelope(response=body)


def apology_response() -> ResponseEnvelope:
    return build_response(speech.APOLOGY_TEXT, reprompt=speech.APOLOGY_TEXT)


# ── Predicates ───────────────────────────────────────────────────────────────

def is_request_type(request_type: str) -> Callable[[RequestEnvelope], bool]:
    return lambda envelope: envelope.request_type == request_type


def is_intent(*names: str) -> Callable[[RequestEnvelope], bool]:
    return lambda envelope: (
        envelope.request_type == "IntentRequest" and envelope.intent_name in names
    )


def _is_weather_request(envelope: RequestEnvelope) -> bool:
    return is_request_type("LaunchRequest")(envelope) or is_intent(WEATHER_INTENT)(envelope)


# ── Handlers ─────────────────────────────────────────────────────────────────

async def handle_weather(envelope: RequestEnvelope, ctx: SkillContext) -> ResponseEnvelope:
    if not envelope.user_id:
        raise InvalidUserIdError("request carries no user id")
    user_id = normalize_user_id(envelope.user_id)

    try:
        report = await fetch_current_weather(ctx.location)
    except WeatherFetchError as exc:
        logger.warning("Weather unavailable for user_id=%r: %s", user_id, exc)
        return build_response(
            speech.WEATHER_UNAVAILABLE_TEXT, reprompt=speech.WEATHER_UNAVAILABLE_TEXT
        )

    # Read, advance and write with nothing else touching the record in between.
    # The store lock only excludes other threads; coroutines are kept out
    # because nothing inside this block awaits.
    with ctx.store.transaction() as store:
        previous = store.get(user_id)
        tier, next_state = advance(previous)
        store.put(user_id, next_state, merge=previous is not None)

    logger.info(
        "Weather spoken: user_id=%r tier=%d count=%d next_length=%d",
        user_id,
        tier,
        next_state.count,
        next_state.length,
    )
    text = speech.render_weather(tier, report, city=ctx.city)
    return build_response(text, reprompt=text)


async def handle_hello_world(envelope: RequestEnvelope, ctx: SkillContext) -> ResponseEnvelope:
    return build_response(speech.HELLO_TEXT)


async def handle_help(envelope: RequestEnvelope, ctx: SkillContext) -> ResponseEnvelope:
    return build_response(speech.HELP_TEXT, reprompt=speech.HELP_TEXT)


async def handle_cancel_and_stop(envelope: RequestEnvelope, ctx: SkillContext) -> ResponseEnvelope:
    return build_response(speech.GOODBYE_TEXT, end_session=True)


async def handle_fallback(envelope: RequestEnvelope, ctx: SkillContext) -> ResponseEnvelope:
    return build_response(speech.FALLBACK_TEXT, reprompt=speech.FALLBACK_TEXT)


async def handle_session_ended(envelope: RequestEnvelope, ctx: SkillContext) -> ResponseEnvelope:
    logger.info(
        "Session ended: reason=%s envelope=%s",
        envelope.request.reason,
        envelope.model_dump_json(by_alias=True, exclude_none=True),
    )
    return build_response()


async def handle_intent_reflector(envelope: RequestEnvelope, ctx: SkillContext) -> ResponseEnvelope:
    # Debugging aid: repeats back intents nothing else claimed.
    return build_response(speech.REFLECTOR_TEMPLATE.format(intent_name=envelope.intent_name))


REQUEST_HANDLERS: list[RequestHandler] = [
    RequestHandler("weather", _is_weather_request, handle_weather),
    RequestHandler("hello_world", is_intent("HelloWorldIntent"), handle_hello_world),
    RequestHandler("help", is_intent("AMAZON.HelpIntent"), handle_help),
    RequestHandler(
        "cancel_and_stop",
        is_intent("AMAZON.CancelIntent", "AMAZON.StopIntent"),
        handle_cancel_and_stop,
    ),
    RequestHandler("fallback", is_intent("AMAZON.FallbackIntent"), handle_fallback),
    RequestHandler("session_ended", is_request_type("SessionEndedRequest"), handle_session_ended),
    # Must stay last among intent handlers: it accepts any intent.
    RequestHandler("intent_reflector", is_request_type("IntentRequest"), handle_intent_reflector),
]


async def dispatch(
    envelope: RequestEnvelope,
    ctx: SkillContext,
    handlers: list[RequestHandler] | None = None,
) -> ResponseEnvelope:
    """Route one invocation to its handler; never raises."""
    handlers = REQUEST_HANDLERS if handlers is None else handlers
    logger.info(
        "Incoming request: type=%s intent=%s",
        envelope.request_type,
        envelope.intent_name,
    )

    try:
        for handler in handlers:
            if handler.can_handle(envelope):
                logger.debug("Dispatching to handler %s", handler.name)
                return await handler.handle(envelope, ctx)
        logger.error("No handler for request type=%s", envelope.request_type)
    except Exception:
        logger.error("Unhandled exception while handling request", exc_info=True)

    return apology_response()
