"""Core desktop notification logic for chat clients.

Owned by the Desktop Notifications team.
"""

__version__ = "0.1.0"

from .collaborators import (
    AlertRenderer,
    CallbackAlertRenderer,
    Directory,
    InMemoryDirectory,
    NullSoundPlayer,
    SoundPlayer,
)
from .config import EngineConfig, NotifyConfig, load_config
from .dispatcher import FocusChanged, MessageReceived, NotificationDispatcher
from .engine import NotificationEngine
from .errors import (
    ChatNotifyConnectionError,
    ChatNotifyError,
    ChatNotifyHandshakeError,
    ChatNotifyResponseError,
    ChatNotifyTimeout,
    ConfigLoadError,
)
from .focus import FocusTracker
from .localization import CatalogLocalizer, Localizer
from .models import (
    AlertRequest,
    ChannelContext,
    ChannelType,
    MessageEvent,
    NotifyPreference,
    NotifyProps,
    UserProfile,
)
from .session import NotificationSession
from .user_agent import ClientVariant, classify_user_agent

__all__ = [
    "AlertRenderer",
    "AlertRequest",
    "CallbackAlertRenderer",
    "CatalogLocalizer",
    "ChannelContext",
    "ChannelType",
    "ChatNotifyConnectionError",
    "ChatNotifyError",
    "ChatNotifyHandshakeError",
    "ChatNotifyResponseError",
    "ChatNotifyTimeout",
    "ClientVariant",
    "ConfigLoadError",
    "Directory",
    "EngineConfig",
    "FocusChanged",
    "FocusTracker",
    "InMemoryDirectory",
    "Localizer",
    "MessageEvent",
    "MessageReceived",
    "NotificationDispatcher",
    "NotificationEngine",
    "NotificationSession",
    "NotifyConfig",
    "NotifyPreference",
    "NotifyProps",
    "NullSoundPlayer",
    "SoundPlayer",
    "UserProfile",
    "__version__",
    "classify_user_agent",
    "load_config",
]
