# sms_api/models/session.py
from sqlalchemy import Column, String, DateTime, Boolean, JSON, ForeignKey, Uuid
from .base import Base, utcnow


def extract_device_info(user_agent: str) -> dict:
    """Rough device/browser/os classification from a User-Agent header."""
    ua = (user_agent or "").lower()

    if "ipad" in ua or "tablet" in ua:
        device_type = "Tablet"
    elif "mobile" in ua or "android" in ua or "iphone" in ua:
        device_type = "Mobile"
    elif "windows" in ua:
        device_type = "Windows Desktop"
    elif "macintosh" in ua or "mac os" in ua:
        device_type = "Mac Desktop"
    elif "linux" in ua:
        device_type = "Linux Desktop"
    else:
        device_type = "Desktop"

    # Edge and Chrome UAs also mention Safari
    if "edg/" in ua or "edge" in ua:
        browser = "Edge"
    elif "firefox" in ua:
        browser = "Firefox"
    elif "chrome" in ua:
        browser = "Chrome"
    elif "safari" in ua:
        browser = "Safari"
    else:
        browser = "Other"

    if "windows" in ua:
        os_name = "Windows"
    elif "android" in ua:
        os_name = "Android"
    elif "iphone" in ua or "ipad" in ua:
        os_name = "iOS"
    elif "mac os" in ua or "macintosh" in ua:
        os_name = "macOS"
    elif "linux" in ua:
        os_name = "Linux"
    else:
        os_name = "Other"

    return {"type": device_type, "browser": browser, "os": os_name}


class UserSession(Base):
    __tablename__ = "sessions"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    session_id = Column(String(64), nullable=False, unique=True, index=True)
    refresh_token_hash = Column(String(64))

    ip_address = Column(String(45))
    user_agent = Column(String(500))
    device_info = Column(JSON)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    last_activity = Column(DateTime, default=utcnow)
    login_time = Column(DateTime, default=utcnow)
    logout_time = Column(DateTime)

    department = Column(String(30))
    role = Column(String(30))

    def end(self):
        self.is_active = False
        self.logout_time = utcnow()
