"""
Nutrition Tools

Food calorie lookup and BMI arithmetic.
Returns structured data, not user-facing strings.
"""

import math
import re
from typing import Any, Dict, Optional, Tuple

from agents.intent_router import Capability
from toolkit.base import Tool, ToolResult


# kcal per 100g
FOOD_CALORIES: Dict[str, int] = {
    # 水果類
    "蘋果": 52, "香蕉": 89, "橘子": 47, "葡萄": 62, "草莓": 32, "奇異果": 61,
    "芒果": 60, "鳳梨": 50, "西瓜": 30, "哈密瓜": 34, "櫻桃": 63, "桃子": 39,
    "梨子": 57, "柳橙": 47,
    # 蔬菜類
    "白菜": 13, "高麗菜": 25, "菠菜": 23, "花椰菜": 25, "紅蘿蔔": 41, "番茄": 18,
    "小黃瓜": 16, "萵苣": 15, "洋蔥": 40, "馬鈴薯": 77, "地瓜": 86, "玉米": 86,
    # 肉類
    "雞胸肉": 165, "雞腿肉": 209, "豬肉": 242, "牛肉": 250, "魚肉": 206, "蝦子": 99,
    "蛋": 155,
    # 主食類
    "白米飯": 130, "糙米飯": 111, "麵條": 131, "麵包": 265, "吐司": 264,
    # 堅果類
    "花生": 567, "杏仁": 579, "核桃": 654, "腰果": 553,
    # 飲品類
    "牛奶": 42, "豆漿": 33, "可樂": 42, "果汁": 45,
    # 零食類
    "巧克力": 546, "餅乾": 502, "洋芋片": 536, "冰淇淋": 207,
}

# grams per counted unit (顆, 根, 碗, ...)
PORTION_SIZES: Dict[str, int] = {
    "蘋果": 182,
    "香蕉": 118,
    "橘子": 154,
    "蛋": 50,
    "白米飯": 150,
    "麵包": 28,
    "牛奶": 240,
}

DAILY_REFERENCE_KCAL = "1800-2400"

_NUMERALS = {"半": 0.5, "一": 1, "兩": 2, "二": 2, "三": 3, "四": 4, "五": 5,
             "六": 6, "七": 7, "八": 8, "九": 9, "十": 10}

_AMOUNT = r"(\d+(?:\.\d+)?|[半一兩二三四五六七八九十])"
_COUNT_UNIT = r"([顆個根片碗杯條塊份])"
_WEIGHT_UNIT = r"(公克|克|g|G)"

_AMOUNT_FIRST = re.compile(rf"^{_AMOUNT}\s*(?:{_COUNT_UNIT}|{_WEIGHT_UNIT})\s*(.+)$")
_FOOD_FIRST = re.compile(rf"^(.+?)\s*{_AMOUNT}\s*(?:{_COUNT_UNIT}|{_WEIGHT_UNIT})$")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _amount(token: str) -> float:
    return float(_NUMERALS[token]) if token in _NUMERALS else float(token)


def parse_food_query(query: str) -> Optional[Tuple[str, float, str]]:
    """
    Split a food query into (food, amount, unit).

    unit is the counted unit, "g", or "default" when no quantity is given.
    """
    cleaned = re.sub(r"[，。！？,.!?]", "", query or "").strip()
    cleaned = re.sub(r"(多少|有|的|卡路里|熱量|大卡)+$", "", cleaned).strip()
    if not cleaned:
        return None

    match = _AMOUNT_FIRST.match(cleaned)
    if match:
        amount, count_unit, weight_unit, food = match.groups()
        return food.strip(), _amount(amount), count_unit or "g"

    match = _FOOD_FIRST.match(cleaned)
    if match:
        food, amount, count_unit, weight_unit = match.groups()
        return food.strip(), _amount(amount), count_unit or "g"

    return cleaned, 1.0, "default"


def find_food(name: str) -> Optional[str]:
    """Exact match first, then the first partial match in table order."""
    if name in FOOD_CALORIES:
        return name
    for food in FOOD_CALORIES:
        if food in name or name in food:
            return food
    return None


def calories_for(food: str, amount: float, unit: str) -> int:
    per_100g = FOOD_CALORIES[food]
    if unit == "g":
        return _round_half_up(per_100g * amount / 100)
    portion = PORTION_SIZES.get(food, 100)
    return _round_half_up(per_100g * portion * amount / 100)


class CalorieTool(Tool):
    """
    Calorie lookup over a per-100g food table.
    """

    capability = Capability.NUTRITION

    @property
    def name(self) -> str:
        return "calorie_calculator"

    @property
    def description(self) -> str:
        return "計算食物的卡路里含量。可以輸入食物名稱和份量，例如：'1顆蘋果'、'100g雞胸肉'、'1碗白米飯'"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Food and portion, e.g. '1顆蘋果' or '100g雞胸肉'",
                }
            },
            "required": ["query"],
        }

    def run(self, input: Dict[str, Any]) -> ToolResult:
        """
        Compute calories for a food query.

        Args:
            input: {"query": "1顆蘋果"}

        Returns:
            ToolResult with food, portion, calories and per-100g value
        """
        parsed = parse_food_query(str(input.get("query", "")))
        if parsed is None:
            return ToolResult.fail("Missing 'query' in input")

        name, amount, unit = parsed
        food = find_food(name)
        if food is None:
            suggestions = [f for f in FOOD_CALORIES if name[:1] and (name[0] in f or f[0] in name)][:5]
            return ToolResult(
                success=False,
                error=f"找不到「{name}」的卡路里資訊",
                output={"suggestions": suggestions, "supported_food_count": len(FOOD_CALORIES)},
            )

        amount_text = f"{amount:g}"
        portion = f"1份{food}" if unit == "default" else f"{amount_text}{unit}{food}"

        return ToolResult.ok({
            "food": food,
            "portion": portion,
            "calories_kcal": calories_for(food, amount, unit),
            "calories_per_100g": FOOD_CALORIES[food],
            "daily_reference_kcal": DAILY_REFERENCE_KCAL,
        })


BMI_CATEGORIES = (
    (18.5, "體重過輕", "建議增加營養攝取，適度運動增肌"),
    (25.0, "正常範圍", "維持良好的生活習慣，繼續保持！"),
    (30.0, "體重過重", "建議控制飲食，增加運動量"),
    (math.inf, "肥胖", "建議諮詢醫師，制定減重計畫"),
)


def bmi_category(bmi: float) -> Tuple[str, str]:
    for upper, name, advice in BMI_CATEGORIES:
        if bmi < upper:
            return name, advice
    return BMI_CATEGORIES[-1][1], BMI_CATEGORIES[-1][2]


class BMITool(Tool):
    """
    Body-mass-index calculator.
    """

    capability = Capability.BODY_METRICS

    @property
    def name(self) -> str:
        return "bmi_calculator"

    @property
    def description(self) -> str:
        return "計算BMI（身體質量指數）。輸入身高（公分）與體重（公斤），例如：身高170、體重70"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "height_cm": {"type": "number", "description": "Height in centimetres"},
                "weight_kg": {"type": "number", "description": "Weight in kilograms"},
            },
            "required": ["height_cm", "weight_kg"],
        }

    def run(self, input: Dict[str, Any]) -> ToolResult:
        """
        Args:
            input: {"height_cm": 170, "weight_kg": 70}

        Returns:
            ToolResult with bmi, category and ideal weight range
        """
        try:
            height_cm = float(input.get("height_cm"))
            weight_kg = float(input.get("weight_kg"))
        except (TypeError, ValueError):
            return ToolResult.fail("height_cm and weight_kg must be numbers")

        if height_cm <= 0 or weight_kg <= 0:
            return ToolResult.fail("身高和體重必須大於0")

        height_m = height_cm / 100
        bmi = weight_kg / (height_m * height_m)
        category, advice = bmi_category(bmi)

        return ToolResult.ok({
            "height_cm": height_cm,
            "weight_kg": weight_kg,
            "bmi": round(bmi, 1),
            "category": category,
            "advice": advice,
            "ideal_weight_kg": {
                "min": _round_half_up(18.5 * height_m * height_m),
                "max": _round_half_up(24.9 * height_m * height_m),
            },
        })
