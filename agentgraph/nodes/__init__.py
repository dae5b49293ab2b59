"""Node variants: the units of work an agent graph is wired from."""

from .base import BaseNode
from .completion import CompletionNode, DeepThinkNode
from .decide_tool import DecideToolGroupNode, DecideToolNode
from .native_tool import NativeToolGroupNode, NativeToolNode
from .nowadays import NowadaysNode
from .react import ReActNode
from .skill import Skill, SkillCatalogNode

__all__ = [
    "BaseNode",
    "CompletionNode",
    "DecideToolGroupNode",
    "DecideToolNode",
    "DeepThinkNode",
    "NativeToolGroupNode",
    "NativeToolNode",
    "NowadaysNode",
    "ReActNode",
    "Skill",
    "SkillCatalogNode",
]
