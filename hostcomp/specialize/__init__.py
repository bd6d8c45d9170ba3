from .access import AccessSpecializer
from .condcast import CastKind, CastPlan, CondCastCompiler, TypeClause
from .ranker import INFERENCE_LOG, InferenceLog, most_specific
from .resolver import TypeEnv, merge_envs, resolve_type

__all__ = [
    "AccessSpecializer",
    "CastKind",
    "CastPlan",
    "CondCastCompiler",
    "TypeClause",
    "INFERENCE_LOG",
    "InferenceLog",
    "most_specific",
    "TypeEnv",
    "merge_envs",
    "resolve_type",
]
