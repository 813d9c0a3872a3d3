"""Kit Builder Module — end-to-end starter kit orchestration and CLI."""

from .pipeline import KitPipeline, load_selector_config, select_offline

__all__ = ["KitPipeline", "load_selector_config", "select_offline"]
