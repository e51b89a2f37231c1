import pytest

from agents.intent_router import CAPABILITY_KEYWORDS, Capability, IntentRouter


@pytest.fixture
def router():
    return IntentRouter()


def test_weather_question(router):
    caps = router.classify("台北天氣如何")
    assert Capability.WEATHER in caps
    assert Capability.BODY_METRICS not in caps


def test_calorie_question(router):
    assert Capability.NUTRITION in router.classify("一顆蘋果多少卡路里")


def test_bmi_question(router):
    assert Capability.BODY_METRICS in router.classify("身高170 體重70 BMI")


def test_small_talk_is_plain_chat(router):
    assert router.classify("你好") == frozenset()
    decision = router.route("你好")
    assert not decision.use_tools
    assert decision.to_metadata()["path"] == "chat"


def test_body_metrics_needs_second_tier(router):
    """Test that generic health words alone do not select body metrics."""
    assert Capability.BODY_METRICS not in router.classify("我想變得更健康")
    assert Capability.BODY_METRICS not in router.classify("背包重 5kg")
    assert Capability.BODY_METRICS in router.classify("我的體重是 60kg")


def test_match_is_case_sensitive(router):
    """Test that matching is a plain substring test with no case folding."""
    assert Capability.WEATHER in router.classify("weather in Tokyo")
    assert Capability.WEATHER not in router.classify("WEATHER in Tokyo")


def test_multiple_capabilities_are_all_exposed(router):
    decision = router.route("今天天氣好熱，吃一根香蕉有多少熱量？")
    assert decision.capabilities == frozenset({Capability.WEATHER, Capability.NUTRITION})
    assert decision.to_metadata()["capabilities"] == ["nutrition", "weather"]


def test_empty_and_none_input(router):
    assert router.classify("") == frozenset()
    assert router.classify(None) == frozenset()


def test_policy_is_data(router):
    """Test that every keyword in the tables routes to its capability."""
    for capability, keywords in CAPABILITY_KEYWORDS.items():
        if capability == Capability.BODY_METRICS:
            continue
        for keyword in keywords:
            assert capability in router.classify(keyword), keyword


def test_custom_tables():
    router = IntentRouter(keywords={Capability.WEATHER: ("rain",)}, required={})
    assert router.classify("will it rain") == frozenset({Capability.WEATHER})
    assert router.classify("天氣") == frozenset()
