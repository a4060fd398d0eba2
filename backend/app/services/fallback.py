"""Canned topic answers served when Gemini is not available.

The answers are streamed through :func:`pace_tokens`, so a client reading the
body sees the same incremental shape as a real generation.
"""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass

from app.schemas.chat import SearchType

DEFAULT_TOKEN_DELAY_MS = 30.0


@dataclass(frozen=True)
class TopicAnswer:
    name: str
    keywords: tuple[str, ...]
    text: str

    def matches(self, lowered_message: str) -> bool:
        return any(keyword in lowered_message for keyword in self.keywords)


BONE_LOSS = TopicAnswer(
    name="bone_loss",
    keywords=("bone", "osteo"),
    text="""**Bone Loss in Microgravity**

Research shows astronauts lose 1-2% of bone mass per month in space, primarily in weight-bearing bones.

**Key Findings:**
• Reduced mechanical loading leads to decreased bone formation
• Increased bone resorption through osteoclast activity
• Exercise countermeasures can mitigate but not eliminate bone loss
• Recovery after return to Earth takes months to years

**Current Research Focus:**
• Pharmacological interventions (bisphosphonates)
• Optimized exercise protocols
• Nutritional supplementation strategies

*Source: Multiple NASA Life Sciences publications*""",
)

MUSCLE_ATROPHY = TopicAnswer(
    name="muscle_atrophy",
    keywords=("muscle", "atrophy"),
    text="""**Muscle Atrophy in Space**

Astronauts can lose 20-40% of muscle mass during long-duration missions, particularly in antigravity muscles.

**Research Insights:**
• Reduced protein synthesis and increased degradation
• Type I (slow-twitch) fibers more affected than Type II
• Exercise countermeasures essential for maintaining function
• Changes occur within days of entering microgravity

**Countermeasures:**
• Resistance training (2+ hours daily)
• High-intensity interval training
• Proper nutrition (adequate protein intake)

*Based on ISS research data*""",
)

RADIATION = TopicAnswer(
    name="radiation",
    keywords=("radiation", "cosmic"),
    text="""**Radiation Exposure in Space**

Space radiation poses significant health risks, including increased cancer risk and potential CNS effects.

**Key Concerns:**
• Galactic cosmic rays (GCR) - continuous low-dose exposure
• Solar particle events (SPE) - acute high-dose exposure
• Secondary radiation from spacecraft shielding
• DNA damage and increased mutation rates

**Protection Strategies:**
• Optimized spacecraft shielding materials
• Mission timing to avoid solar maximum
• Pharmaceutical radioprotectors under investigation
• Real-time monitoring systems

*Ongoing research priority for Mars missions*""",
)

PLANT_GROWTH = TopicAnswer(
    name="plant_growth",
    keywords=("plant", "crop", "grow"),
    text="""**Plant Growth in Microgravity**

NASA has conducted extensive research on growing plants in space for food production and life support.

**Research Findings:**
• Plants can complete full life cycles in microgravity
• Root growth shows altered gravitropism
• Gas exchange and water delivery require special systems
• Light quality affects growth rates and nutrition

**Applications:**
• Fresh food production for long missions
• Oxygen generation and CO2 removal
• Psychological benefits for crew
• Potential for Mars/lunar agriculture

**Current Projects:**
• Veggie plant growth system
• Advanced Plant Habitat
• Testing various crop species

*Essential for sustainable deep space exploration*""",
)

IMMUNE_SYSTEM = TopicAnswer(
    name="immune_system",
    keywords=("immune", "infection"),
    text="""**Immune System Changes in Microgravity**

Spaceflight significantly impacts immune function, increasing infection risk and viral reactivation.

**Key Findings:**
• Altered T-cell distribution and function
• Decreased natural killer cell activity
• Increased stress hormones affecting immunity
• Dormant viruses (like HSV) can reactivate
• Wound healing may be impaired

**Risk Factors:**
• Confined environment with limited medical care
• Stress from mission demands
• Radiation exposure
• Altered circadian rhythms

**Research Directions:**
• Nutritional interventions
• Exercise as immune booster
• Pharmaceutical countermeasures
• Real-time immune monitoring

*Critical concern for Mars missions*""",
)

CARDIOVASCULAR = TopicAnswer(
    name="cardiovascular",
    keywords=("heart", "cardiovascular", "blood"),
    text="""**Cardiovascular Adaptations in Space**

The cardiovascular system undergoes significant changes in microgravity due to fluid redistribution.

**Major Effects:**
• Cephalad fluid shift (fluid moves to upper body)
• Cardiac atrophy and decreased stroke volume
• Reduced orthostatic tolerance upon return
• Changes in blood vessel structure
• Altered blood pressure regulation

**Countermeasures:**
• Lower body negative pressure (LBNP) training
• Aerobic exercise protocols
• Fluid loading before re-entry
• Compression garments

**Long-term Concerns:**
• Risk of arrhythmias
• Reduced exercise capacity
• Post-flight orthostatic intolerance

*Extensive ISS cardiovascular research ongoing*""",
)

# Evaluated in order; the first topic with a keyword in the message wins.
TOPIC_ANSWERS: tuple[TopicAnswer, ...] = (
    BONE_LOSS,
    MUSCLE_ATROPHY,
    RADIATION,
    PLANT_GROWTH,
    IMMUNE_SYSTEM,
    CARDIOVASCULAR,
)

GENERAL_OVERVIEW = """**BIOSPACE AI - Space Biology Research Assistant**

I specialize in NASA space biology research topics including:

**Human Health in Space:**
• Bone density loss and countermeasures
• Muscle atrophy and exercise protocols
• Cardiovascular system adaptations
• Immune system dysregulation
• Radiation exposure effects

**Life Sciences:**
• Plant growth and food production in space
• Microbial behavior in microgravity
• Cellular and molecular changes
• Gene expression alterations

**Mission Support:**
• Countermeasure development
• Risk assessment for long-duration missions
• Life support system design

*Please ask me a specific question about any of these topics, and I'll provide detailed information based on NASA's research.*"""

WEB_SEARCH_NOTICE = """**Web Search Results**

I apologize, but I don't have access to live web search capabilities at the moment. However, I can provide information based on NASA's space biology research database.

For the most current information about "{message}", I recommend:
• Visiting NASA's official website (nasa.gov)
• Checking the NASA Life Sciences Data Archive
• Exploring recent publications on NASA Technical Reports Server

Would you like me to answer your question using the NASA space biology research database instead?"""


def web_search_notice(message: str) -> str:
    # str.replace keeps braces inside the user's message literal.
    return WEB_SEARCH_NOTICE.replace("{message}", message)


def match_topic(message: str) -> TopicAnswer | None:
    lowered = message.lower()
    for topic in TOPIC_ANSWERS:
        if topic.matches(lowered):
            return topic
    return None


def select_fallback_answer(message: str, search_type: SearchType = "rag") -> str:
    """Pick the canned answer for a question.

    Web mode always gets the search-unavailable notice with the question echoed
    back verbatim. Otherwise the first topic whose keyword appears in the
    lower-cased message wins, and the capabilities overview is the catch-all.
    """
    if search_type == "web":
        return web_search_notice(message)
    topic = match_topic(message)
    if topic is None:
        return GENERAL_OVERVIEW
    return topic.text


def split_tokens(text: str) -> list[str]:
    if not text:
        return []
    words = text.split(" ")
    return [word if index == 0 else " " + word for index, word in enumerate(words)]


async def pace_tokens(
    text: str, delay_ms: float = DEFAULT_TOKEN_DELAY_MS
) -> AsyncIterator[bytes]:
    """Emit ``text`` one space-delimited token at a time.

    The sleep after each token is unconditional; it paces the output for the
    reader and does not react to how fast the consumer drains the stream.
    """
    delay_sec = max(delay_ms, 0.0) / 1000
    for token in split_tokens(text):
        yield token.encode("utf-8")
        await asyncio.sleep(delay_sec)

