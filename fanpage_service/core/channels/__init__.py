from fanpage_service.core.channels.graph_client import FacebookGraphClient, GraphClientConfig

__all__ = ["FacebookGraphClient", "GraphClientConfig"]
