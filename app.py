from flask import Blueprint, Flask, current_app, jsonify, request
from twilio.twiml.messaging_response import MessagingResponse
import logging
from datetime import datetime, timedelta

from config import get_settings
from reports.storage import ReportStore
from session.context import TOKEN_KEYS
from session.storage import SenderStateStore
from sms.dialog import Turn
from sms.errors import Audience, DialogError, StorageFailure
from sms.outbound import OutboundCleaner
from sms.registry import SmsAppRegistry

logger = logging.getLogger(__name__)

DELETE_OUTBOUND_PATH = "/delete-outbound"

bp = Blueprint("sms", __name__)


class SmsServices:
    """Everything the routes need, created once per Flask app."""

    def __init__(self, settings, reports, sender_state, registry, cleaner):
        self.settings = settings
        self.reports = reports
        self.sender_state = sender_state
        self.registry = registry
        self.cleaner = cleaner


def services() -> SmsServices:
    return current_app.extensions["sms"]


# -------------------------------------------------
# Helpers: conversation tokens + TwiML
# -------------------------------------------------

def load_tokens(sms, sender):
    if sms.settings.state_backend == "cookie":
        return {key: request.cookies[key] for key in TOKEN_KEYS if key in request.cookies}
    return sms.sender_state.load(sender)


def save_tokens(sms, sender, response, prior, tokens):
    if sms.settings.state_backend == "cookie":
        for key in TOKEN_KEYS:
            if key in tokens:
                response.set_cookie(key, tokens[key], httponly=False)
            elif key in prior:
                response.delete_cookie(key)
        return
    sms.sender_state.save(sender, tokens)


def twiml_reply(text):
    twiml = MessagingResponse()
    twiml.message(text, action=DELETE_OUTBOUND_PATH, method="POST")
    # status must be 200 whatever happened, or the provider sends nothing
    return current_app.response_class(str(twiml), status=200, mimetype="text/xml")


# -------------------------------------------------
# Routes
# -------------------------------------------------

@bp.route("/<org>/<project>", methods=["POST"])
def receive_sms(org, project):
    sms = services()

    body = request.form.get("Body", "")
    sender = request.form.get("From", "")
    message_id = request.form.get("MessageSid")

    prior = load_tokens(sms, sender)

    try:
        dialog = sms.registry.get(org, project)
        turn = dialog.handle(body, prior, user_agent=request.headers.get("User-Agent"))
    except DialogError as e:
        if e.audience == Audience.WEB:
            logger.error("Cannot answer SMS for %s/%s: %s", org, project, e.message)
        else:
            logger.warning("Cannot answer SMS for %s/%s: %s", org, project, e.message)
        turn = Turn(reply_text=e.partial_reply, tokens=prior, error=e)
    except Exception as e:
        logger.exception("Unhandled error answering SMS for %s/%s", org, project)
        error = DialogError(str(e), audience=Audience.WEB)
        turn = Turn(reply_text=error.partial_reply, tokens=prior, error=error)

    response = twiml_reply(turn.reply_text)
    save_tokens(sms, sender, response, prior, turn.tokens)
    sms.cleaner.schedule(message_id)
    return response


@bp.route(DELETE_OUTBOUND_PATH, methods=["POST"])
def delete_outbound():
    """Provider status callback: delivered messages are removed from its log."""
    if request.form.get("SmsStatus") == "delivered":
        services().cleaner.schedule(request.form.get("MessageSid"))
    return current_app.response_class("", status=200, mimetype="text/xml")


@bp.route("/<org>/evidence/<token>", methods=["GET"])
def evidence_token_status(org, token):
    sms = services()

    try:
        report = sms.reports.find_by_evidence_token(org, token)
    except StorageFailure:
        return jsonify({"error": "Report store unavailable"}), 500

    if not report:
        return jsonify({"error": "Unknown evidence token"}), 404

    last_updated = datetime.fromisoformat(report["last_updated"])
    expires = last_updated + timedelta(days=sms.settings.evidence_timeout_days)
    if datetime.utcnow() > expires:
        return jsonify({"error": "Evidence token has expired"}), 410

    return jsonify({
        "alias": report["alias"],
        "project": report["project"],
        "expires": expires.isoformat(),
    })


# -------------------------------------------------
# Setup
# -------------------------------------------------

def create_app(settings=None, cleaner=None):
    settings = settings or get_settings()

    logging.basicConfig(level=settings.log_level)

    reports = ReportStore(settings.sms_db_path)
    reports.init_db()

    sender_state = SenderStateStore(settings.sms_db_path)
    sender_state.init_db()

    if cleaner is None:
        cleaner = OutboundCleaner(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            delay=settings.outbound_delete_delay,
            max_attempts=settings.outbound_delete_max_attempts,
        )

    app = Flask(__name__)
    app.extensions["sms"] = SmsServices(
        settings=settings,
        reports=reports,
        sender_state=sender_state,
        registry=SmsAppRegistry(settings, reports),
        cleaner=cleaner,
    )
    app.register_blueprint(bp)
    return app


if __name__ == "__main__":
    create_app().run(debug=True)
