"""
frontend/app.py — Streamlit simulator for the Adaptive Weather Skill.

Plays the part of the voice platform: builds request envelopes, POSTs them
to the skill's /invoke endpoint, and shows what the skill would say.
"""

import os
import uuid
from pathlib import Path

import httpx
import streamlit as st
from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env")

SKILL_PORT = int(os.getenv("SKILL_PORT", "8001"))
SKILL_INVOKE_URL = f"http://localhost:{SKILL_PORT}/invoke"

REQUESTS = {
    "Open the skill": ("LaunchRequest", None),
    "Ask for the weather": ("IntentRequest", "GetWeatherIntent"),
    "Say hello": ("IntentRequest", "HelloWorldIntent"),
    "Ask for help": ("IntentRequest", "AMAZON.HelpIntent"),
    "Say stop": ("IntentRequest", "AMAZON.StopIntent"),
    "Say something unrelated": ("IntentRequest", "AMAZON.FallbackIntent"),
    "End the session": ("SessionEndedRequest", None),
}


def _build_envelope(user_id: str, request_type: str, intent_name: str | None) -> dict:
    request = {"type": request_type, "requestId": f"sim.{uuid.uuid4()}", "locale": "en-US"}
    if intent_name:
        request["intent"] = {"name": intent_name}
    if request_type == "SessionEndedRequest":
        request["reason"] = "USER_INITIATED"
    return {
        "version": "1.0",
        "session": {"sessionId": st.session_state.session_id, "user": {"userId": user_id}},
        "context": {"System": {"user": {"userId": user_id}}},
        "request": request,
    }


st.set_page_config(page_title="Weather Skill Simulator", page_icon="⛅", layout="centered")
st.title("⛅ Weather Skill Simulator")

# ── Session state ──────────────────────────────────────────────────────────────

if "transcript" not in st.session_state:
    st.session_state.transcript = []  # list of {role, content}
if "session_id" not in st.session_state:
    st.session_state.session_id = f"sim.session.{uuid.uuid4()}"

with st.sidebar:
    user_id = st.text_input("User ID", value="amzn1.ask.account.SIMULATOR")
    custom_intent = st.text_input("Custom intent name", value="")
    if st.button("Clear transcript"):
        st.session_state.transcript = []

# ── Render transcript ──────────────────────────────────────────────────────────

for entry in st.session_state.transcript:
    with st.chat_message(entry["role"]):
        st.markdown(entry["content"])

# ── Send a request ─────────────────────────────────────────────────────────────

choice = st.selectbox("Request", list(REQUESTS) + ["Custom intent"])

if st.button("Send"):
    if choice == "Custom intent":
        request_type, intent_name = "IntentRequest", custom_intent or "UnknownIntent"
    else:
        request_type, intent_name = REQUESTS[choice]

    label = intent_name or request_type
    st.session_state.transcript.append({"role": "user", "content": f"*{label}*"})

    error_message = None
    spoken = None
    try:
        with httpx.Client(timeout=30.0) as client:
            response = client.post(
                SKILL_INVOKE_URL,
                json=_build_envelope(user_id, request_type, intent_name),
            )
        if response.status_code != 200:
            error_message = f"Skill returned error {response.status_code}."
        else:
            body = response.json().get("response", {})
            spoken = body.get("outputSpeech", {}).get("text", "")
    except httpx.ConnectError:
        error_message = "Could not connect to the weather skill. Is it running?"
    except Exception as exc:
        error_message = str(exc)

    if error_message:
        st.error(error_message)
    else:
        st.session_state.transcript.append(
            {"role": "assistant", "content": spoken or "*(no speech)*"}
        )
        st.rerun()
