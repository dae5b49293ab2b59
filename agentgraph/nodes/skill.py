"""
Skill catalog node.

A skill is a directory holding a SKILL.md whose YAML front matter names and
describes it, plus optional ``references/`` and ``scripts/`` folders:

  skills/
    pdf-tools/
      SKILL.md          ---\\nname: pdf-tools\\ndescription: ...\\n---\\n<instructions>
      references/api.md
      scripts/extract.py

The catalog is scanned once when the node is built. Executing the node only
advertises the skills to the model; it never runs them.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

import yaml

from agentgraph.shared.constants import SKILL_MANIFEST, SKILL_REFERENCES_DIR, SKILL_SCRIPTS_DIR
from agentgraph.shared.models import AgentMessage, AgentState
from agentgraph.shared.prompts import SKILL_USAGE_RULES
from agentgraph.nodes.base import BaseNode

logger = logging.getLogger(__name__)

SKILLS_SECTION = "[xml|skills]"


@dataclass
class Skill:
    name: str
    description: str
    instructions: str = ""
    path: str = ""
    reference_files: list = field(default_factory=list)  # paths relative to `path`
    script_files: list = field(default_factory=list)

    @property
    def manifest_path(self) -> str:
        return os.path.join(self.path, SKILL_MANIFEST)


def parse_front_matter(text: str) -> tuple[dict, str]:
    """Split ``---`` delimited YAML front matter from the body.

    Returns ``({}, text)`` when there is no front matter block.
    Raises yaml.YAMLError on malformed YAML.
    """
    lines = text.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, text
    for i in range(1, len(lines)):
        if lines[i].strip() == "---":
            meta = yaml.safe_load("\n".join(lines[1:i])) or {}
            if not isinstance(meta, dict):
                raise yaml.YAMLError("front matter is not a mapping")
            return meta, "\n".join(lines[i + 1:])
    return {}, text


def _collect_files(root: str, base: str) -> list[str]:
    if not os.path.isdir(root):
        return []
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for fname in sorted(filenames):
            found.append(os.path.relpath(os.path.join(dirpath, fname), base))
    return found


def load_skill(skill_dir: str) -> Optional[Skill]:
    """Read one skill directory. Returns None (after logging why) if unusable."""
    manifest = os.path.join(skill_dir, SKILL_MANIFEST)
    try:
        with open(manifest, "r", encoding="utf-8") as f:
            meta, body = parse_front_matter(f.read())
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.warning(f"Failed to parse {manifest}: {e}")
        return None

    if not meta.get("name") or not meta.get("description"):
        logger.warning(f"{manifest} front matter is missing name/description")
        return None

    return Skill(
        name=str(meta["name"]),
        description=str(meta["description"]),
        instructions=body.strip(),
        path=os.path.abspath(skill_dir),
        reference_files=_collect_files(os.path.join(skill_dir, SKILL_REFERENCES_DIR), skill_dir),
        script_files=_collect_files(os.path.join(skill_dir, SKILL_SCRIPTS_DIR), skill_dir),
    )


def scan_skills(skills_dir: str) -> list[Skill]:
    if not os.path.isdir(skills_dir):
        logger.warning(f"Skills directory not found: {skills_dir}")
        return []

    skills = []
    for entry in sorted(os.listdir(skills_dir)):
        skill_dir = os.path.join(skills_dir, entry)
        if not os.path.isdir(skill_dir) or not os.path.isfile(os.path.join(skill_dir, SKILL_MANIFEST)):
            continue
        skill = load_skill(skill_dir)
        if skill:
            skills.append(skill)
    logger.info(f"Loaded {len(skills)} skills from {skills_dir}")
    return skills


def render_skill_listing(skills: list[Skill]) -> str:
    entries = "".join(
        "\n    <skill>\n"
        f"        <name>{s.name}</name>\n"
        f"        <description>{s.description}</description>\n"
        f"        <location>{s.manifest_path}</location>\n"
        "    </skill>"
        for s in skills
    )
    return f"<available_skills>{entries}\n</available_skills>"


def default_skill_prompt(skills: list[Skill]) -> str:
    return f"{render_skill_listing(skills)}\n\n{SKILL_USAGE_RULES}"


class SkillCatalogNode(BaseNode):
    """Injects the skill listing and usage rules as a system message."""

    def __init__(
        self,
        name: str,
        skills_dir: str,
        skill_prompt: Union[str, Callable[[list], str], None] = None,
        label: Optional[str] = None,
        description: str = "",
        metadata: Optional[dict] = None,
    ):
        super().__init__(name, label, description, metadata)
        self.skills_dir = skills_dir
        self.skill_prompt = skill_prompt
        self.skills = scan_skills(skills_dir)

    def get_skill(self, name: str) -> Optional[Skill]:
        return next((s for s in self.skills if s.name == name), None)

    def render_prompt(self) -> str:
        if callable(self.skill_prompt):
            return self.skill_prompt(self.skills)
        if self.skill_prompt:
            return self.skill_prompt
        return default_skill_prompt(self.skills)

    async def execute(self, state: AgentState) -> AgentState:
        state.append(AgentMessage(role="system", content=self.render_prompt(), title="skills"))
        self._chunks(state).section(SKILLS_SECTION, render_skill_listing(self.skills))
        return state

    def snapshot(self, state: AgentState):
        return {"skills": [s.name for s in self.skills]}
