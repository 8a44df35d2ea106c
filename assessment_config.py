"""
Assessment Catalogue — 6C questions, weighting table, labels & description fragments

Provides:
  1. CATEGORIES — the six scored learning categories, in tie-break order
  2. QUESTIONS / PREFERENCE_QUESTIONS — the fixed questionnaire
  3. ScoringConfig — weighting table + label/description tables consumed by scoring.py
  4. QUIZ_TYPES — per-respondent contribution weights for consolidated profiles
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path

logger = logging.getLogger(__name__)


# ── Categories ─────────────────────────────────────────────────────────

CATEGORIES: tuple[str, ...] = (
    "Communication",
    "Collaboration",
    "Content",
    "Critical Thinking",
    "Creative Innovation",
    "Confidence",
)

CATEGORY_METADATA: dict[str, str] = {
    "Communication": "How your child expresses ideas and connects with others",
    "Collaboration": "Working together and building relationships",
    "Content": "Curiosity and love for learning new things",
    "Critical Thinking": "Problem-solving and analytical thinking",
    "Creative Innovation": "Imagination and unique approaches to challenges",
    "Confidence": "Self-belief and willingness to take on challenges",
}

LIKERT_SCALE = [
    {"value": 1, "label": "Never"},
    {"value": 2, "label": "Rarely"},
    {"value": 3, "label": "Sometimes"},
    {"value": 4, "label": "Often"},
    {"value": 5, "label": "Always"},
]

SCALE_MIN = 1
SCALE_MAX = 5
SCALE_MIDPOINT = 3


# ── Questions ──────────────────────────────────────────────────────────

@dataclass
class Question:
    id: int
    text: str
    category: str
    example: str = ""


@dataclass
class PreferenceQuestion:
    id: int
    key: str                      # "Engagement" | "Modality" | "Social" | "Interests"
    text: str
    options: dict[str, str]       # {value: display text}
    multi_select: bool = False


QUESTIONS: list[Question] = [
    # Communication
    Question(1, "During group discussions or show-and-tell, [name] enthusiastically shares detailed stories and experiences.",
             "Communication", "Think about family dinners, playdates, or school presentations"),
    Question(2, "When explaining ideas or instructions to others, [name] speaks clearly and uses vocabulary that others can understand.",
             "Communication", "Like when they teach a friend a game or explain what they learned"),
    Question(3, "In conversations and discussions, [name] listens carefully to others before jumping in with their own thoughts.",
             "Communication", "Notice if they wait for others to finish speaking before responding"),
    Question(4, "When sharing with a group, [name] uses eye contact and gestures to help others understand their ideas.",
             "Communication", "Watch how they use their hands and eyes when telling stories"),
    # Collaboration
    Question(5, "During group activities and games, [name] naturally takes turns and makes sure everyone gets included.",
             "Collaboration", "Board games, sports, group projects"),
    Question(6, "In team activities, [name] jumps in with ideas and helps the group stay organized and on track.",
             "Collaboration", "Group work at school or family projects at home"),
    Question(7, "When disagreements happen in groups, [name] tries to find compromises that work for everyone.",
             "Collaboration", "When siblings disagree or friends have different ideas"),
    Question(8, "During team activities, [name] cheers on their teammates and gets excited about group victories.",
             "Collaboration", "Notice if they celebrate others' successes, not just their own"),
    # Content
    Question(9, "When [name] learns something new, they seem to 'get it' quickly and remember it well across different subjects.",
             "Content", "Math, reading, science, or art"),
    Question(10, "When [name] learns something new, they often connect it to things they already know and share those connections.",
             "Content", "Like saying 'This reminds me of...'"),
    Question(11, "During learning time, [name] shows real curiosity and asks questions that show they're thinking deeply.",
             "Content", "The kinds of 'why' and 'what if' questions that make you think"),
    Question(12, "When [name] faces new challenges, they use what they've learned before to figure out solutions.",
             "Content", "Using math skills for cooking, or reading strategies for new books"),
    # Critical Thinking
    Question(13, "When [name] faces a problem, they think of different ways to solve it before picking the best approach.",
             "Critical Thinking", "Building something, fixing a toy, or figuring out a puzzle"),
    Question(14, "During conversations, [name] asks questions that show they're really thinking deeply about topics.",
             "Critical Thinking", "Questions that go beyond the obvious"),
    Question(15, "When someone tells [name] something new, they think about it carefully rather than just accepting it right away.",
             "Critical Thinking", "They might ask 'Are you sure?' or 'How do you know that?'"),
    Question(16, "When facing big challenges, [name] breaks them down into smaller, easier-to-handle pieces.",
             "Critical Thinking", "Like cleaning their room one section at a time"),
    # Creative Innovation
    Question(17, "During creative activities, [name] comes up with original, imaginative ideas that surprise and delight others.",
             "Creative Innovation", "Art projects, storytelling, building"),
    Question(18, "When [name] faces challenges, they think of creative, 'outside-the-box' solutions that others might not consider.",
             "Creative Innovation", "Unconventional tools or approaches that actually work"),
    Question(19, "In their art, writing, or projects, [name] adds special personal touches that make their work uniquely theirs.",
             "Creative Innovation", "That signature style or special detail"),
    Question(20, "During free-play or open-ended activities, [name] loves to experiment and try new ways of doing things.",
             "Creative Innovation", "Mixing colors, trying new materials, or inventing their own rules"),
    # Confidence
    Question(21, "When [name] faces something new or challenging, they show excitement and eagerness to give it a try.",
             "Confidence", "New sports, difficult puzzles, or unfamiliar activities"),
    Question(22, "In group settings, [name] shares their opinions and ideas without worrying too much about what others think.",
             "Confidence", "Class discussions, family conversations, or with friends"),
    Question(23, "When [name] makes mistakes, they bounce back quickly, learn from them, and keep trying.",
             "Confidence", "Mistakes in homework, sports, or games"),
    Question(24, "When working independently, [name] approaches tasks with confidence and sticks with them even when they get tricky.",
             "Confidence", "Homework, personal projects, or solo activities"),
]

PREFERENCE_QUESTIONS: list[PreferenceQuestion] = [
    PreferenceQuestion(25, "Engagement", "How does your child engage best with new learning?", {
        "hands-on": "Hands-on exploration and manipulation",
        "visual": "Looking at pictures, diagrams, and demonstrations",
        "listening": "Listening to explanations and discussions",
        "movement": "Moving around while learning",
    }),
    PreferenceQuestion(26, "Modality", "What type of activities does your child prefer?", {
        "quiet": "Quiet, focused individual work",
        "interactive": "Interactive discussions and conversations",
        "creative": "Creative and artistic expression",
        "physical": "Physical and kinesthetic activities",
    }),
    PreferenceQuestion(27, "Social", "How does your child work best with others?", {
        "independent": "Independently, then sharing results",
        "small-group": "In small groups of 2-3 children",
        "large-group": "In larger group settings",
        "one-on-one": "One-on-one with an adult",
    }),
    PreferenceQuestion(28, "Interests", "What types of topics or activities interest your child most?", {
        "animals": "Animals and nature",
        "building": "Building and construction",
        "art": "Art and crafts",
        "music": "Music and rhythm",
        "stories": "Stories and books",
        "science": "Science and experiments",
        "sports": "Sports and physical activities",
        "technology": "Technology and computers",
    }, multi_select=True),
]

TOTAL_QUESTIONS = len(QUESTIONS)


# ── Labels & description fragments ─────────────────────────────────────

PERSONALITY_LABELS: dict[str, str] = {
    "Communication-Collaboration": "Social Communicator",
    "Communication-Content": "Knowledge Sharer",
    "Communication-Critical Thinking": "Thoughtful Speaker",
    "Communication-Creative Innovation": "Creative Storyteller",
    "Communication-Confidence": "Confident Leader",
    "Collaboration-Content": "Team Scholar",
    "Collaboration-Critical Thinking": "Strategic Partner",
    "Collaboration-Creative Innovation": "Creative Collaborator",
    "Collaboration-Confidence": "Natural Leader",
    "Content-Critical Thinking": "Analytical Scholar",
    "Content-Creative Innovation": "Innovative Thinker",
    "Content-Confidence": "Confident Learner",
    "Critical Thinking-Creative Innovation": "Creative Problem Solver",
    "Critical Thinking-Confidence": "Bold Analyst",
    "Creative Innovation-Confidence": "Fearless Creator",
}

FALLBACK_LABEL = "Unique Learner"

LABEL_SUMMARIES: dict[str, str] = {
    "Social Communicator": "Social Communicators learn best by talking ideas through with others.",
    "Knowledge Sharer": "Knowledge Sharers love passing on what they have just discovered.",
    "Thoughtful Speaker": "Thoughtful Speakers weigh their ideas carefully before putting them into words.",
    "Creative Storyteller": "Creative Storytellers turn what they imagine into stories others want to hear.",
    "Confident Leader": "Confident Leaders speak up and help others find their voice.",
    "Team Scholar": "Team Scholars grow their knowledge fastest when learning alongside friends.",
    "Strategic Partner": "Strategic Partners help a group plan its way through a problem.",
    "Creative Collaborator": "Creative Collaborators bring fresh ideas to shared projects.",
    "Natural Leader": "Natural Leaders rally the people around them and keep a team moving.",
    "Analytical Scholar": "Analytical Scholars dig into how and why things work.",
    "Innovative Thinker": "Innovative Thinkers build new ideas on top of what they already know.",
    "Confident Learner": "Confident Learners take on new material without hesitation.",
    "Creative Problem Solver": "Creative Problem Solvers find unexpected routes to a solution.",
    "Bold Analyst": "Bold Analysts question assumptions and trust their own reasoning.",
    "Fearless Creator": "Fearless Creators try out new ideas without worrying about getting it wrong.",
    FALLBACK_LABEL: "Unique Learners draw on a balanced mix of learning strengths.",
}

PRIMARY_DESCRIPTIONS: dict[str, str] = {
    "Communication": "Your child excels at expressing ideas clearly and connecting with others through words.",
    "Collaboration": "Your child thrives in group settings and naturally works well with peers.",
    "Content": "Your child shows strong academic curiosity and retains information effectively.",
    "Critical Thinking": "Your child approaches problems analytically and thinks deeply about concepts.",
    "Creative Innovation": "Your child brings original ideas and imaginative solutions to challenges.",
    "Confidence": "Your child shows self-assurance and resilience when facing new challenges.",
}

SECONDARY_DESCRIPTIONS: dict[str, str] = {
    "Communication": "They also share their thinking readily with the people around them.",
    "Collaboration": "They also work generously with others and help a group succeed.",
    "Content": "They also hold on to new knowledge and enjoy building on it.",
    "Critical Thinking": "They also like to reason carefully before deciding.",
    "Creative Innovation": "They also bring a spark of imagination to everyday tasks.",
    "Confidence": "They also keep going when a task becomes difficult.",
}

FALLBACK_DESCRIPTION = "Your child has a unique combination of learning strengths."


# ── Quiz types (consolidation weights) ─────────────────────────────────

QUIZ_TYPES: dict[str, float] = {
    "general": 1.0,             # full assessment
    "parent_home": 0.6,         # parent observing at home
    "teacher_classroom": 0.8,   # teacher observing in class
}

RESPONDENT_TYPES = ("parent", "teacher")


# ── Scoring configuration ──────────────────────────────────────────────

def _default_weights() -> dict[int, tuple[str, float]]:
    return {q.id: (q.category, 1.0) for q in QUESTIONS}


@dataclass(frozen=True)
class ScoringConfig:
    """Weighting table and text tables used by the scoring engine."""

    categories: tuple[str, ...] = CATEGORIES
    weights: dict[int, tuple[str, float]] = field(default_factory=_default_weights)
    labels: dict[str, str] = field(default_factory=lambda: dict(PERSONALITY_LABELS))
    label_summaries: dict[str, str] = field(default_factory=lambda: dict(LABEL_SUMMARIES))
    primary_descriptions: dict[str, str] = field(default_factory=lambda: dict(PRIMARY_DESCRIPTIONS))
    secondary_descriptions: dict[str, str] = field(default_factory=lambda: dict(SECONDARY_DESCRIPTIONS))
    fallback_label: str = FALLBACK_LABEL
    fallback_description: str = FALLBACK_DESCRIPTION
    midpoint: int = SCALE_MIDPOINT

    def questions_for(self, category: str) -> list[tuple[int, float]]:
        return [(qid, w) for qid, (cat, w) in sorted(self.weights.items()) if cat == category]


DEFAULT_CONFIG = ScoringConfig()


def load_scoring_config(path: str | Path) -> ScoringConfig:
    """Build a ScoringConfig from a JSON file, overlaying the defaults.

    Recognised keys: ``weights`` ({question_id: {"category", "weight"}}),
    ``labels``, ``label_summaries``, ``primary_descriptions``,
    ``secondary_descriptions``, ``fallback_label``, ``fallback_description``.
    Raises ValueError on unknown categories or non-positive weights.
    """
    data = json.loads(Path(path).read_text())
    overrides: dict = {}

    if "weights" in data:
        weights: dict[int, tuple[str, float]] = {}
        for qid, entry in data["weights"].items():
            category = entry.get("category")
            weight = float(entry.get("weight", 1.0))
            if category not in CATEGORIES:
                raise ValueError(f"Unknown category {category!r} for question {qid}")
            if weight <= 0:
                raise ValueError(f"Weight for question {qid} must be positive")
            weights[int(qid)] = (category, weight)
        overrides["weights"] = weights

    for key in ("labels", "label_summaries", "primary_descriptions", "secondary_descriptions"):
        if key in data:
            merged = dict(getattr(DEFAULT_CONFIG, key))
            merged.update(data[key])
            overrides[key] = merged

    for key in ("fallback_label", "fallback_description"):
        if key in data:
            overrides[key] = str(data[key])

    logger.info("Loaded scoring config from %s (%d overrides)", path, len(overrides))
    return replace(DEFAULT_CONFIG, **overrides)


def question_catalogue() -> dict:
    """Serialisable view of the questionnaire for the assessment UI."""
    return {
        "categories": [
            {"name": c, "description": CATEGORY_METADATA[c]} for c in CATEGORIES
        ],
        "scale": LIKERT_SCALE,
        "questions": [
            {"id": q.id, "text": q.text, "category": q.category, "example": q.example}
            for q in QUESTIONS
        ],
        "preference_questions": [
            {
                "id": p.id,
                "key": p.key,
                "text": p.text,
                "multi_select": p.multi_select,
                "options": [{"value": v, "text": t} for v, t in p.options.items()],
            }
            for p in PREFERENCE_QUESTIONS
        ],
        "total_questions": TOTAL_QUESTIONS,
    }
