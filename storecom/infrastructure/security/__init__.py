from .passwords import hash_password, verify_password
from .session_tokens import SessionData, create_session_token, verify_session_token
