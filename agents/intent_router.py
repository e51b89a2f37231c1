"""
Intent Router

Control plane component that decides whether a message needs tools.
Does NOT call LLMs or produce user-facing output.

DESIGN RULES:
- Routing is control logic, NOT intelligence
- The keyword tables below ARE the policy
- Case-sensitive substring match, no stemming or tokenization
- Several capabilities may match at once; all are exposed
- An empty match selects plain chat
"""

from enum import Enum
from typing import Dict, FrozenSet, Tuple

from pydantic import BaseModel, Field


class Capability(str, Enum):
    """Tool domains available to the tool-augmented path."""
    WEATHER = "weather"
    NUTRITION = "nutrition"
    BODY_METRICS = "body_metrics"


CAPABILITY_KEYWORDS: Dict[Capability, Tuple[str, ...]] = {
    Capability.WEATHER: (
        "天氣", "氣溫", "溫度", "下雨", "晴天", "陰天", "雲", "風",
        "濕度", "氣壓", "預報", "明天天氣", "今天天氣", "天氣預報",
        "weather", "台北天氣", "高雄天氣", "台中天氣",
    ),
    Capability.NUTRITION: (
        "卡路里", "大卡", "熱量", "營養", "多少卡", "卡洛里",
        "蘋果", "香蕉", "雞胸肉", "米飯", "麵包", "食物",
        "calorie", "kcal",
    ),
    Capability.BODY_METRICS: (
        "BMI", "bmi", "身體質量指數", "體重", "身高", "肥胖",
        "過重", "體脂", "健康", "標準體重", "kg", "cm",
    ),
}

# Second tier: generic words like "健康" or "kg" alone are not enough
REQUIRED_KEYWORDS: Dict[Capability, Tuple[str, ...]] = {
    Capability.BODY_METRICS: ("身高", "體重", "BMI", "bmi"),
}


class RoutingDecision(BaseModel):
    """
    Routing decision from the intent router.

    This is the ONLY output format the router produces.
    """
    capabilities: FrozenSet[Capability] = Field(default_factory=frozenset)
    reason: str = Field(..., description="Brief explanation for the routing decision")

    @property
    def use_tools(self) -> bool:
        return bool(self.capabilities)

    def to_metadata(self) -> Dict[str, object]:
        return {
            "path": "tools" if self.use_tools else "chat",
            "capabilities": sorted(c.value for c in self.capabilities),
            "reason": self.reason,
        }


class IntentRouter:
    """
    Keyword-driven classifier.

    Flow:
        User Text → IntentRouter → { capabilities, reason } → Orchestrator
    """

    def __init__(
        self,
        keywords: Dict[Capability, Tuple[str, ...]] = CAPABILITY_KEYWORDS,
        required: Dict[Capability, Tuple[str, ...]] = REQUIRED_KEYWORDS,
    ):
        self._keywords = keywords
        self._required = required

    def classify(self, text: str) -> FrozenSet[Capability]:
        """
        Select every capability whose keyword tiers all match.

        Args:
            text: Raw user message

        Returns:
            Set of matched capabilities, empty for plain chat
        """
        if not text:
            return frozenset()

        matched = set()
        for capability, keywords in self._keywords.items():
            if not any(keyword in text for keyword in keywords):
                continue
            second_tier = self._required.get(capability)
            if second_tier and not any(keyword in text for keyword in second_tier):
                continue
            matched.add(capability)
        return frozenset(matched)

    def route(self, text: str) -> RoutingDecision:
        """
        Classify and explain.
        """
        capabilities = self.classify(text)
        if not capabilities:
            return RoutingDecision(reason="No tool keywords; plain chat")
        names = ", ".join(sorted(c.value for c in capabilities))
        return RoutingDecision(capabilities=capabilities, reason=f"Matched tool keywords: {names}")
