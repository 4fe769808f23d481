from fanpage_service.core.realtime.connection_registry import (
    ConnectionRegistry,
    RealtimeConnection,
    encode_event,
)

__all__ = ["ConnectionRegistry", "RealtimeConnection", "encode_event"]
