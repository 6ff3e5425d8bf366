"""
Chat transcript store.

Keeps the ordered list of turns and decides whether a streamed fragment
continues the current assistant turn or starts a new one.
"""

import logging
from typing import Dict, Iterator, List, Optional

from .exceptions import TranscriptError
from .types import Role, Turn, TurnState

logger = logging.getLogger(__name__)


class Transcript:
    """
    Ordered chat turns for one chat session.

    Insertion order is display order. At most one assistant turn is open at a
    time and it is always the trailing turn.

    Turns may carry the id of the stream session they belong to. A user turn
    tagged with a session id makes that session the current one; fragments
    tagged with any other session id are rejected instead of merged. Untagged
    fragments follow the plain adjacency rule.
    """

    def __init__(self) -> None:
        self._turns: List[Turn] = []
        self._current_session: Optional[str] = None

    @property
    def turns(self) -> List[Turn]:
        return list(self._turns)

    @property
    def last_turn(self) -> Optional[Turn]:
        return self._turns[-1] if self._turns else None

    @property
    def open_turn(self) -> Optional[Turn]:
        last = self.last_turn
        if last is not None and last.is_open:
            return last
        return None

    @property
    def current_session(self) -> Optional[str]:
        return self._current_session

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self._turns)

    def append_user_turn(self, text: str, session_id: Optional[str] = None) -> Turn:
        """Append a closed user turn. Never merges with the previous turn."""
        # a late callback from the previous stream must not land in a new bubble
        self.close_open_assistant_turn()
        turn = Turn(role=Role.USER, content=text, state=TurnState.CLOSED, session_id=session_id)
        self._turns.append(turn)
        self._current_session = session_id
        return turn

    def merge_assistant_fragment(self, text: str, session_id: Optional[str] = None) -> Optional[Turn]:
        """
        Merge a streamed fragment into the transcript.

        Args:
            text: Fragment text, appended verbatim
            session_id: Stream session that produced the fragment

        Returns:
            The turn that received the fragment, or None when the fragment
            belongs to a stream session other than the current one.
        """
        if session_id is not None and session_id != self._current_session:
            logger.warning(
                f"Dropping fragment from stale stream session {session_id} "
                f"(current: {self._current_session})"
            )
            return None

        turn = self.open_turn
        if turn is not None and turn.role is Role.ASSISTANT:
            self.extend_turn(turn, text)
            return turn

        turn = Turn(role=Role.ASSISTANT, content=text, state=TurnState.OPEN, session_id=session_id)
        self._turns.append(turn)
        return turn

    def append_assistant_turn(self, text: str, session_id: Optional[str] = None) -> Turn:
        """Append a closed assistant turn, closing any open one first."""
        self.close_open_assistant_turn()
        turn = Turn(role=Role.ASSISTANT, content=text, state=TurnState.CLOSED, session_id=session_id)
        self._turns.append(turn)
        return turn

    def close_open_assistant_turn(self) -> Optional[Turn]:
        """Close the trailing open assistant turn, if any. Idempotent."""
        turn = self.open_turn
        if turn is None:
            return None
        turn.state = TurnState.CLOSED
        return turn

    def extend_turn(self, turn: Turn, text: str) -> None:
        """Append text to a specific turn, which must still be open."""
        if not turn.is_open:
            raise TranscriptError("Cannot modify a closed turn")
        turn.content += text

    def as_messages(self) -> List[Dict[str, str]]:
        return [turn.as_message() for turn in self._turns]

    def clear(self) -> None:
        self._turns.clear()
        self._current_session = None
