"""
SMS reporting dialog.

One SmsDialog per organisation/project. Nothing about a respondent is kept
on the instance: each turn starts from the tokens the transport hands back
(see session.context) and returns the reply plus the tokens to hand out.

Dialog states (token `next_sms_type`):

    new_report -> used_before -> alias -> response -> ... -> final
                                            |  help
                                            v
                                         continue -> store -> new_report
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime

from reports.storage import SUPPLEMENTARY_INFORMATION
from session.context import (
    ALIAS,
    FIRST_TEXT,
    NEXT_QUESTION,
    NEXT_SMS_TYPE,
    SESSION_ID,
    ConversationState,
)
from sms.classifier import NO, YES, clean_response, is_help, is_restart, to_yes_or_no
from sms.errors import Audience, DialogError, SessionExpired
from sms.identifiers import adjective_animal, evidence_token, generate_unique

logger = logging.getLogger(__name__)

SMS_NEW_REPORT = "new_report"
SMS_USED_BEFORE = "used_before"
SMS_ALIAS = "alias"
SMS_RESPONSE = "response"
SMS_CONTINUE = "continue"
SMS_STORE = "store"
SMS_FINAL = "final"

SMS_STATES = (
    SMS_NEW_REPORT,
    SMS_USED_BEFORE,
    SMS_ALIAS,
    SMS_RESPONSE,
    SMS_CONTINUE,
    SMS_STORE,
    SMS_FINAL,
)

FIRST_TEXT_FIELD = "First Text"

# -------------------------------------------------
# Message texts
# -------------------------------------------------

DEFAULT_INTRO = (
    "By completing this form, you consent to xxxxx.\n"
    "Please reply with the keywords SKIP or HELP at any point.\n"
    "Have you used this reporting service before?"
)
USED_BEFORE_AGAIN = "Sorry, we didn't understand that response. Have you used this service before?"
ALIAS_PROMPT = "Please enter your anonymous alias. To use a new alias, please reply 'NEW'"
ALIAS_NOT_FOUND = "Sorry, that alias hasn't been used before."
NOT_UNDERSTOOD = "Sorry, we didn't understand your response."
CONTINUE_PROMPT = "Would you like to continue with this report?"
STORE_PROMPT = (
    "Would you like to store your report? Please note that if you have amendments "
    "to your responses, you can give them after the last question."
)
STORED = "Your responses have been stored."
DELETED = "Your responses have been deleted."
AMENDMENT_THANKS = (
    "Thank you for this extra information. You can send more if you wish. "
    "To start a new report, reply 'RESTART'"
)


@dataclass
class Turn:
    """Outcome of one inbound message."""
    reply_text: str
    tokens: dict = field(default_factory=dict)
    error: DialogError = None

    @property
    def sms_type(self):
        return self.tokens.get(NEXT_SMS_TYPE, SMS_NEW_REPORT)


class SmsDialog:
    def __init__(
        self,
        org,
        project,
        spec,
        questions,
        reports,
        *,
        help_phone="XXXXX",
        evidence_base_url="",
        max_attempts=100,
        alias_generator=adjective_animal,
        token_generator=evidence_token,
    ):
        self.org = org
        self.project = project
        self.version = spec.version
        self.intro = spec.sms.get("intro") or DEFAULT_INTRO
        self.questions = tuple(questions)
        self.reports = reports
        self.help_phone = help_phone
        self.evidence_base_url = evidence_base_url.rstrip("/")
        self.max_attempts = max_attempts
        self.alias_generator = alias_generator
        self.token_generator = token_generator

        self._handlers = {
            SMS_NEW_REPORT: self._on_new_report,
            SMS_USED_BEFORE: self._on_used_before,
            SMS_ALIAS: self._on_alias,
            SMS_RESPONSE: self._on_response,
            SMS_CONTINUE: self._on_continue,
            SMS_STORE: self._on_store,
            SMS_FINAL: self._on_final,
        }

    # -------------------------------------------------
    # Entry point
    # -------------------------------------------------

    def handle(self, body, prior_tokens=None, user_agent=None) -> Turn:
        """
        Process one inbound SMS. Always returns a reply, whatever fails.
        """
        state = ConversationState()
        try:
            state = ConversationState(prior_tokens)
            reply = self.receive_text(state, body or "", user_agent)
            return Turn(reply_text=reply, tokens=state.snapshot())
        except DialogError as e:
            return self._failed_turn(state, e)
        except Exception as e:
            logger.exception("Unhandled error in SMS turn for %s/%s", self.org, self.project)
            error = DialogError(str(e), audience=Audience.WEB)
            return Turn(reply_text=error.partial_reply, tokens=state.snapshot(), error=error)

    def _failed_turn(self, state, error):
        if error.audience == Audience.WEB:
            logger.error("SMS turn failed for %s/%s: %s", self.org, self.project, error.message)
        else:
            logger.warning("SMS turn failed for %s/%s: %s", self.org, self.project, error.message)

        if isinstance(error, SessionExpired):
            state.clear()
        return Turn(reply_text=error.partial_reply, tokens=state.snapshot(), error=error)

    def receive_text(self, state, body, user_agent=None):
        sms_type = state.peek(NEXT_SMS_TYPE) or SMS_NEW_REPORT
        if sms_type not in self._handlers:
            logger.warning("Unknown SMS state %r, starting a new report", sms_type)
            sms_type = SMS_NEW_REPORT

        if is_help(body):
            if sms_type == SMS_NEW_REPORT:
                reply = self.ask_if_used_before(state, body, first=True)
            elif sms_type in (SMS_USED_BEFORE, SMS_ALIAS):
                reply = self.help_text()
            else:
                reply = self.ask_if_continue(state, self.help_text())
        else:
            reply = self._handlers[sms_type](state, body, user_agent)

        logger.debug(
            "%s/%s: %s -> %s",
            self.org, self.project, sms_type, state.peek(NEXT_SMS_TYPE) or SMS_NEW_REPORT,
        )
        return reply

    # -------------------------------------------------
    # State handlers
    # -------------------------------------------------

    def _on_new_report(self, state, body, user_agent):
        return self.ask_if_used_before(state, body, first=True)

    def _on_used_before(self, state, body, user_agent):
        answer = to_yes_or_no(body)
        if answer == YES:
            return self.ask_for_alias(state)
        if answer == NO:
            return self.generate_alias_and_start(state, user_agent)
        return self.ask_if_used_before(state, body, first=False)

    def _on_alias(self, state, body, user_agent):
        alias = clean_response(body)
        if alias == "new":
            return self.generate_alias_and_start(state, user_agent)

        if alias and self.alias_exists(alias):
            self.initiate_report(state, alias, user_agent)
            return self.next_question(state, 0)

        return self.ask_for_alias(state, ALIAS_NOT_FOUND)

    def _on_response(self, state, body, user_agent):
        next_index = state.get_int(NEXT_QUESTION)
        answered = next_index - 1
        if not 0 <= answered < len(self.questions):
            # the compiled form no longer matches this conversation
            raise SessionExpired(NEXT_QUESTION)

        self.store_answer(state, self.questions[answered].field_label, body)
        return self.next_question(state, next_index)

    def _on_continue(self, state, body, user_agent):
        answer = to_yes_or_no(body)
        if answer == YES:
            # re-ask the question that was pending when help was requested
            return self.next_question(state, state.get_int(NEXT_QUESTION) - 1)
        if answer == NO:
            return self.ask_if_store(state)
        return self.ask_if_continue(state, NOT_UNDERSTOOD)

    def _on_store(self, state, body, user_agent):
        answer = to_yes_or_no(body)
        if answer == YES:
            state.clear()
            return f"{STORED} {self.closing_text()}"
        if answer == NO:
            self.reports.delete(state.get(SESSION_ID))
            state.clear()
            return f"{DELETED} {self.closing_text()}"
        return self.ask_if_store(state, NOT_UNDERSTOOD)

    def _on_final(self, state, body, user_agent):
        if is_restart(body):
            state.clear()
            return self.ask_if_used_before(state, body, first=True)
        return self.add_amendment(state, body)

    # -------------------------------------------------
    # Prompts
    # -------------------------------------------------

    def ask_if_used_before(self, state, body, first):
        state.set(NEXT_SMS_TYPE, SMS_USED_BEFORE)
        if first:
            # stored on the report once the respondent has an alias
            state.set(FIRST_TEXT, body)
            return self.intro
        return USED_BEFORE_AGAIN

    def ask_for_alias(self, state, opening=None):
        state.set(NEXT_SMS_TYPE, SMS_ALIAS)
        return f"{opening} {ALIAS_PROMPT}" if opening else ALIAS_PROMPT

    def ask_if_continue(self, state, opening):
        state.set(NEXT_SMS_TYPE, SMS_CONTINUE)
        return f"{opening} {CONTINUE_PROMPT}"

    def ask_if_store(self, state, opening=None):
        state.set(NEXT_SMS_TYPE, SMS_STORE)
        return f"{opening} {STORE_PROMPT}" if opening else STORE_PROMPT

    def help_text(self):
        return f"If you would like to speak to someone, please call {self.help_phone}."

    def closing_text(self):
        return (
            "Thank you for using this reporting service. If you want to submit a new report, "
            "please send another text to this number. If you have any questions, "
            f"please call {self.help_phone}"
        )

    def evidence_url(self, token):
        return f"{self.evidence_base_url}/{self.org}/evidence/{token}"

    def final_text(self, token):
        return (
            "Thank you for completing the questions. If you have any supplementary information, "
            f"please send it now. Please go to {self.evidence_url(token)} to provide picture, "
            "audio or video files. If you would like to amend any of your responses, please reply "
            "explaining the changes. If you would like to start a new report, please reply 'RESTART'"
        )

    def next_question(self, state, index):
        """
        Ask question `index`, or close the report if the questions have run out.
        """
        if index < len(self.questions):
            state.set(NEXT_QUESTION, index + 1)
            state.set(NEXT_SMS_TYPE, SMS_RESPONSE)
            return f"Question {index + 1}: {self.questions[index].text}"

        report = self.reports.get(state.get(SESSION_ID))
        if report is None:
            raise SessionExpired(SESSION_ID)
        # continue after help re-enters here at NEXT_QUESTION - 1
        state.set(NEXT_QUESTION, index)
        state.set(NEXT_SMS_TYPE, SMS_FINAL)
        return self.final_text(report["evidence_token"])

    # -------------------------------------------------
    # Report lifecycle
    # -------------------------------------------------

    def alias_exists(self, alias):
        return self.reports.find_by_alias(self.org, alias) is not None

    def evidence_token_exists(self, token):
        return self.reports.find_by_evidence_token(self.org, token) is not None

    def generate_unique_alias(self):
        return generate_unique(self.alias_generator, self.alias_exists, self.max_attempts, "alias")

    def generate_alias_and_start(self, state, user_agent):
        alias = self.generate_unique_alias()
        self.initiate_report(state, alias, user_agent)
        return f"Your new anonymous alias is {alias}.\n{self.next_question(state, 0)}"

    def initiate_report(self, state, alias, user_agent):
        first_text = state.get(FIRST_TEXT)
        token = generate_unique(
            self.token_generator, self.evidence_token_exists, self.max_attempts, "evidence token",
        )

        session_id = self.reports.create_skeleton(
            self.org, self.project, alias, self.version, user_agent,
        )
        try:
            self.reports.set_field(session_id, FIRST_TEXT_FIELD, first_text)
            self.reports.set_meta(session_id, last_updated=datetime.utcnow(), evidence_token=token)
        except Exception:
            # a half-written report would hold on to the alias
            logger.warning("Discarding unfinished SMS report for %s/%s", self.org, self.project)
            self.reports.delete(session_id)
            raise

        state.set(SESSION_ID, session_id)
        state.set(ALIAS, alias)
        logger.info("Started SMS report for %s/%s", self.org, self.project)
        return session_id

    def store_answer(self, state, field_label, value):
        session_id = state.get(SESSION_ID)
        self.reports.set_field(session_id, field_label, value)
        self.reports.set_meta(session_id, last_updated=datetime.utcnow())

    def add_amendment(self, state, body):
        session_id = state.get(SESSION_ID)
        report = self.reports.get(session_id)
        if report is None:
            raise SessionExpired(SESSION_ID)

        info = report["submitted"].get(SUPPLEMENTARY_INFORMATION) or ""
        info = f"{info} | {body}" if info else body
        self.store_answer(state, SUPPLEMENTARY_INFORMATION, info)
        return AMENDMENT_THANKS
