"""Initial companies and jobs loaded into a fresh deployment."""

from __future__ import annotations

from stackwire.domain.model import CompanyInput, JobInput

CREATIVE_CO = "Creative Co."
LOGIC_INC = "Logic Inc."
DATA_DRIVEN_CORP = "DataDriven Corp"

COMPANIES: tuple[CompanyInput, ...] = (
    CompanyInput(
        name=CREATIVE_CO,
        traits={"work_life_balance": 9, "collaboration": 8, "working_from_home": 10},
    ),
    CompanyInput(
        name=LOGIC_INC,
        traits={"deep_focus": 9, "autonomy": 7, "quiet_office": 9, "working_from_home": 8},
    ),
    CompanyInput(
        name=DATA_DRIVEN_CORP,
        traits={"pattern_recognition": 9, "deep_focus": 8, "quiet_office": 7},
    ),
)

JOBS: tuple[JobInput, ...] = (
    JobInput(
        title="Frontend Developer",
        company=CREATIVE_CO,
        description="Build beautiful and accessible user interfaces.",
        traits={"attention_to_detail": 8, "visual_thinking": 9, "working_from_home": 9},
    ),
    JobInput(
        title="Backend Engineer",
        company=LOGIC_INC,
        description="Design and implement scalable server-side logic.",
        traits={"problem_solving": 9, "systematic_thinking": 8, "quiet_office": 8},
    ),
    JobInput(
        title="UX Designer",
        company=CREATIVE_CO,
        description="Create intuitive and user-friendly application flows.",
        traits={"empathy": 9, "visual_thinking": 10, "working_from_home": 10},
    ),
    JobInput(
        title="Data Analyst",
        company=DATA_DRIVEN_CORP,
        description="Find insights and patterns in large datasets.",
        traits={"pattern_recognition": 10, "attention_to_detail": 9, "quiet_office": 7},
    ),
    JobInput(
        title="DevOps Engineer",
        company=LOGIC_INC,
        description="Automate and streamline our infrastructure and deployment pipelines.",
        traits={"systematic_thinking": 9, "problem_solving": 8, "working_from_home": 7},
    ),
)
