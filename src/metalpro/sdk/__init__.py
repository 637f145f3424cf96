from metalpro.sdk.client import MetalProClient, MetalProConfig

__all__ = ["MetalProClient", "MetalProConfig"]
