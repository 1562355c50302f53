"""Agent 实现。"""

from deeplife.agents.memory import MemoryConsolidator, create_memory_node
from deeplife.agents.narrator import (
    Narrator,
    create_choices_node,
    create_montage_node,
    create_narrate_year_node,
)
from deeplife.agents.npc import NPCEvolution, create_evolve_npcs_node
from deeplife.agents.oracle import OracleClient, OracleRole, is_oracle_failure
from deeplife.agents.psychologist import PersonalityAnalysis, Psychologist
from deeplife.agents.utils import extract_json, parse_choices, repair_scenario, strip_code_fence

__all__ = [
    "MemoryConsolidator",
    "NPCEvolution",
    "Narrator",
    "OracleClient",
    "OracleRole",
    "PersonalityAnalysis",
    "Psychologist",
    "create_choices_node",
    "create_evolve_npcs_node",
    "create_memory_node",
    "create_montage_node",
    "create_narrate_year_node",
    "extract_json",
    "is_oracle_failure",
    "parse_choices",
    "repair_scenario",
    "strip_code_fence",
]
