"""Vercel serverless function for casting votes and reading the live tally."""

import json
import logging
import sys
from pathlib import Path

# Add the project root to the path so we can import whodunit modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from whodunit.ballots import BallotTracker
from whodunit.clock import SessionClock, now_ms
from whodunit.config import ConfigError, Settings
from whodunit.dashboard import Dashboard
from whodunit.stores import open_store
from whodunit.suspects import build_gallery

logger = logging.getLogger(__name__)

_components = None


def get_components():
    """Build the clock, tracker and dashboard once per process."""
    global _components
    if _components is None:
        settings = Settings.from_env()
        logging.basicConfig(level=settings.log_level)
        store = open_store(settings.store_url, api_key=settings.api_key)
        gallery = build_gallery()
        clock = SessionClock(store, settings.window_seconds, settings.session_id)
        _components = {
            "settings": settings,
            "clock": clock,
            "tracker": BallotTracker(store, clock, gallery, settings.reveal_schedule()),
            "dashboard": Dashboard(store, gallery, settings.history_limit),
        }
    return _components


def handler(request):
    """Handle incoming requests.

    Accepts POST with a JSON body naming an ``action``:
    - {"action": "vote", "participant": "...", "suspect_id": 3}
    - {"action": "tally"}
    - {"action": "leaderboard"}
    - {"action": "state"}
    - {"action": "start"} / {"action": "reset"}

    Returns JSON.
    """
    # Handle CORS preflight
    if request.method == "OPTIONS":
        return create_response(
            "",
            status=204,
            headers={
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": "POST, OPTIONS",
                "Access-Control-Allow-Headers": "Content-Type",
            },
        )

    if request.method != "POST":
        return create_response(
            {"error": "Method not allowed. Use POST."},
            status=405,
        )

    try:
        content_type = request.headers.get("content-type", "")
        if "application/json" not in content_type:
            return create_response(
                {"error": f"Unsupported content type: {content_type}"},
                status=400,
            )

        data = json.loads(request.body.decode("utf-8"))
        if not isinstance(data, dict):
            raise ValueError("Request body must be a JSON object")
        action = data.get("action")
        if action not in ACTIONS:
            raise ValueError(f"Unknown action: {action!r}")

        return create_response(ACTIONS[action](get_components(), data, now_ms()))

    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return create_response(
            {"error": f"Server misconfigured: {e}"},
            status=500,
        )
    except json.JSONDecodeError as e:
        return create_response(
            {"error": f"Invalid JSON: {e}"},
            status=400,
        )
    except ValueError as e:
        return create_response(
            {"error": str(e)},
            status=400,
        )
    except Exception as e:
        logger.exception("Unhandled error")
        return create_response(
            {"error": f"Internal error: {e}"},
            status=500,
        )


def vote(components, data, now):
    participant = data.get("participant")
    suspect_id = data.get("suspect_id")
    if not isinstance(participant, str) or not participant.strip():
        raise ValueError("Missing 'participant' in request body")
    if not isinstance(suspect_id, int) or isinstance(suspect_id, bool):
        raise ValueError("'suspect_id' must be an integer")
    components["clock"].refresh()
    accepted = components["tracker"].cast_vote(participant.strip(), suspect_id, now)
    return {"accepted": accepted}


def tally(components, data, now):
    return components["dashboard"].poll(now).to_dict()


def leaderboard(components, data, now):
    return {"scores": [r.to_dict() for r in components["dashboard"].leaderboard()]}


def state(components, data, now):
    clock = components["clock"]
    started_at = clock.refresh()
    return {
        "started_at": started_at,
        "elapsed_ms": clock.elapsed_ms(now),
        "window_ms": clock.window_ms,
        "window_closed": clock.is_window_closed(now),
    }


def start(components, data, now):
    clock = components["clock"]
    clock.refresh()
    started = clock.start(now)
    return {"started": started, "started_at": clock.started_at}


def reset(components, data, now):
    components["clock"].reset()
    components["tracker"].forget()
    components["dashboard"].clear_history()
    return {"reset": True}


ACTIONS = {
    "vote": vote,
    "tally": tally,
    "leaderboard": leaderboard,
    "state": state,
    "start": start,
    "reset": reset,
}


def create_response(body, status: int = 200, headers: dict = None):
    """Create a response object for Vercel."""
    response_headers = {
        "Content-Type": "application/json",
        "Access-Control-Allow-Origin": "*",
    }
    if headers:
        response_headers.update(headers)

    if isinstance(body, dict):
        body = json.dumps(body)

    # Return in format expected by Vercel Python runtime
    return {
        "statusCode": status,
        "headers": response_headers,
        "body": body,
    }
