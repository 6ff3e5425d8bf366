"""
Chat session for chatstream.

Holds what the chat screen keeps between sends (credential, user identity,
model choice, transcript) and wires the completion stream into the
transcript.
"""

import logging
from typing import Callable, List, Optional, Union

from .client import AsyncChatClient
from .completions import CancellationToken
from .config import RESTRICTED_ROLE
from .exceptions import CatalogFetchFailure
from .transcript import Transcript
from .types import AccessDenied, StreamOutcome, Turn, new_session_id

logger = logging.getLogger(__name__)

ERROR_TURN_TEXT = "Error fetching model response"
FAILURE_NOTICE = "Error occurred while generating model response. Please try again. Error: {error}"

Notifier = Callable[[str], None]
TurnListener = Callable[[Turn, str], None]


def is_access_denied(role: Optional[str], restricted_role: str = RESTRICTED_ROLE) -> bool:
    """True when ``role`` may not use the chat surface."""
    return role is not None and role == restricted_role


def _log_notice(message: str) -> None:
    logger.error(message)


class ChatSession:
    """
    One user's chat surface.

    Only one stream is meant to run at a time. Starting a send while another
    is still streaming cancels the older stream, and its late fragments are
    dropped by the transcript because they carry a stale session id.
    """

    def __init__(
        self,
        client: AsyncChatClient,
        credential: Optional[str] = None,
        user_id: Optional[str] = None,
        user_role: Optional[str] = None,
        model: Optional[str] = None,
        notifier: Optional[Notifier] = None,
        on_fragment: Optional[TurnListener] = None,
    ) -> None:
        self.client = client
        self.credential = credential
        self.user_id = user_id
        self.user_role = user_role
        self.selected_model = model
        self.models: List[str] = []
        self.transcript = Transcript()
        self.notifier = notifier or _log_notice
        self.on_fragment = on_fragment
        self._active_token: Optional[CancellationToken] = None

    async def refresh_models(self) -> List[str]:
        """
        Reload the model list from the catalog.

        A failed fetch keeps the current list and restricted viewers never
        fetch. The first model becomes the selection when nothing is selected
        yet.
        """
        if self.access_denied or not self.credential:
            return self.models

        try:
            models = await self.client.models.list_models(
                self.credential, self.user_id, self.user_role
            )
        except CatalogFetchFailure as e:
            logger.warning(f"Error fetching model info: {e}")
            return self.models

        if models:
            self.models = [model.id for model in models]
            if self.selected_model is None:
                self.selected_model = self.models[0]
        return self.models

    def select_model(self, model_id: str) -> None:
        if self.models and model_id not in self.models:
            logger.warning(f"Selected model {model_id!r} is not in the catalog")
        self.selected_model = model_id

    @property
    def access_denied(self) -> bool:
        return is_access_denied(self.user_role, self.client.settings.restricted_role)

    def can_send(self, prompt: str) -> bool:
        if self.access_denied:
            return False
        return (
            bool(prompt.strip())
            and bool(self.credential)
            and bool(self.user_id)
            and bool(self.selected_model)
        )

    def cancel(self) -> None:
        """Abandon the in-flight stream, if any."""
        if self._active_token is not None:
            self._active_token.cancel()

    async def send(self, prompt: str) -> Optional[StreamOutcome]:
        """
        Send a prompt and stream the reply into the transcript.

        Returns None without touching the transcript when the prompt is blank,
        the credential, user id or model selection is missing, or the role is
        restricted.
        """
        if not self.can_send(prompt):
            logger.debug("Ignoring send: blank prompt, missing credential/user/model or restricted role")
            return None

        self.cancel()
        token = CancellationToken()
        self._active_token = token
        session_id = new_session_id()
        self.transcript.append_user_turn(prompt, session_id=session_id)

        def merge(text: str) -> None:
            turn = self.transcript.merge_assistant_fragment(text, session_id=session_id)
            if turn is not None and self.on_fragment is not None:
                self.on_fragment(turn, text)

        try:
            outcome = await self.client.completions.stream_completion(
                prompt,
                self.selected_model,
                self.credential,
                on_fragment=merge,
                cancel_token=token,
                session_id=session_id,
            )
        finally:
            if self._active_token is token:
                self._active_token = None

        if outcome.status == "failed":
            self._report_failure(outcome)
        if self.transcript.current_session == session_id:
            self.transcript.close_open_assistant_turn()
        return outcome

    def _report_failure(self, outcome: StreamOutcome) -> None:
        self.notifier(FAILURE_NOTICE.format(error=outcome.error))
        # partial text already shows what happened; only an empty reply gets the placeholder
        if outcome.fragment_count == 0 and self.transcript.current_session == outcome.session_id:
            self.transcript.append_assistant_turn(ERROR_TURN_TEXT, session_id=outcome.session_id)


def open_chat(
    client: AsyncChatClient,
    credential: Optional[str] = None,
    user_id: Optional[str] = None,
    user_role: Optional[str] = None,
    **kwargs,
) -> Union[AccessDenied, ChatSession]:
    """Return the chat session for this user, or the denied state for restricted viewers."""
    if is_access_denied(user_role, client.settings.restricted_role):
        return AccessDenied()
    return ChatSession(
        client,
        credential=credential,
        user_id=user_id,
        user_role=user_role,
        **kwargs,
    )
