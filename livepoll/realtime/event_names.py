"""Socket.IO event names shared with the frontend clients."""

# Selection (audience)
QUESTION_TRANSITION_START = "question-transition-start"
TRANSITION_CANCELLED = "transition-cancelled"
QUESTION_CHANGED = "question-changed"
QUESTION_DESELECTED = "question-deselected"
# Selection (staff)
QUESTION_SELECTED = "question-selected"

# Closing (both rooms)
QUESTION_CLOSING = "question-closing"
QUESTION_CLOSE_CANCELLED = "question-close-cancelled"
QUESTION_CLOSED = "question-closed"
QUESTION_REOPENED = "question-reopened"

# Session lifecycle
SESSION_CLOSED = "session-closed"
SESSION_REOPENED = "session-reopened"

# Staff only
ANONYMOUS_PARTICIPANT_COUNT = "anonymous-participant-count"
NEW_ANONYMOUS_RESPONSE = "new-anonymous-response"
USER_JOINED = "user-joined"
USER_LEFT = "user-left"

# Client -> server (staff namespace)
JOIN_SESSION = "join-session"
LEAVE_SESSION = "leave-session"
