"""
餐单约束令牌编解码

线路格式：以分号分隔的 key=value 对，key 使用固定缩写表；布尔值编码为 1/0；
餐次日期/时间编码为 index#value，用 | 连接并包在单引号中。
整串经 raw DEFLATE 压缩后做 URL 安全的 base64（无填充）。
"""

import base64
import binascii
import datetime as dt
import math
import re
import zlib
from typing import Dict, List, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import InvalidConstraintTokenError
from ..models.plan import PlanConstraints, PlanFilters

# 缩写 -> 完整字段名，顺序即编码顺序
KEY_MAPPINGS: Dict[str, str] = {
    "mD": "mealsDate",
    "mT": "mealsTime",
    "wB": "withBeverage",
    "mPA": "mealsPlanningAmount",
    "sC": "selectedCanteens",
    "pR": "priceRange",
    "tPB": "totalPlannedBudgets",
    "wA": "withAircon",
    "nA": "noAircon",
    "n": "noodles",
    "sc": "soup_curry",
    "s_": "somtum_northeastern",
    "c_": "chicken_rice",
    "r_": "rice_curry",
    "s": "steak",
    "j": "japanese",
    "b": "beverage",
    "o": "others",
}

# 完整字段名 -> PlanFilters 属性
FILTER_FIELDS: Dict[str, str] = {
    "withAircon": "with_aircon",
    "noAircon": "no_aircon",
    "noodles": "noodles",
    "soup_curry": "soup_curry",
    "somtum_northeastern": "somtum_northeastern",
    "chicken_rice": "chicken_rice",
    "rice_curry": "rice_curry",
    "steak": "steak",
    "japanese": "japanese",
    "beverage": "beverage",
    "others": "others",
}

REQUIRED_KEYS = ("withBeverage", "mealsPlanningAmount", "priceRange", "totalPlannedBudgets")

# 解压后的上限，防止压缩炸弹
MAX_INFLATED_BYTES = 16 * 1024

_MEAL_INDEX = re.compile(r"^\d+$")


def _format_number(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _format_bool(value: bool) -> str:
    return "1" if value else "0"


def _format_meal_field(pairs: List[str]) -> str:
    if not pairs:
        return ""
    return "'" + "|".join(pairs) + "'"


def encode_constraints(constraints: PlanConstraints) -> str:
    """
    把规划约束编码为可放入URL的令牌

    plan_id 不进入令牌：同一令牌搭配不同 plan_id 即"换一份"
    """
    dates = [f"{m.meal_number}#{m.date.isoformat()}" for m in constraints.meals if m.date]
    times = [f"{m.meal_number}#{m.time}" for m in constraints.meals if m.time]

    values = {
        "mealsDate": _format_meal_field(dates),
        "mealsTime": _format_meal_field(times),
        "withBeverage": _format_bool(constraints.with_beverage),
        "mealsPlanningAmount": str(constraints.meals_planning_amount),
        "selectedCanteens": ",".join(constraints.selected_canteens),
        "priceRange": ",".join(_format_number(p) for p in constraints.price_range),
        "totalPlannedBudgets": _format_number(constraints.total_planned_budgets),
    }
    for full_name, attr in FILTER_FIELDS.items():
        values[full_name] = _format_bool(getattr(constraints.filters, attr))

    raw = ";".join(f"{short}={values[full]}" for short, full in KEY_MAPPINGS.items())

    compressor = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
    deflated = compressor.compress(raw.encode("utf-8")) + compressor.flush()
    return base64.urlsafe_b64encode(deflated).rstrip(b"=").decode("ascii")


def _inflate_token(token: str) -> str:
    """base64url 解码并 raw inflate，任一步失败都视为令牌无效"""
    if not token:
        raise InvalidConstraintTokenError("约束令牌为空")
    if "+" in token or "/" in token:
        raise InvalidConstraintTokenError("约束令牌不是合法的 base64url", {"reason": "包含标准 base64 字符"})
    padded = token + "=" * (-len(token) % 4)
    try:
        deflated = base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidConstraintTokenError("约束令牌不是合法的 base64url", {"reason": str(e)})

    decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
    try:
        inflated = decompressor.decompress(deflated, MAX_INFLATED_BYTES)
    except zlib.error as e:
        raise InvalidConstraintTokenError("约束令牌解压失败", {"reason": str(e)})
    if decompressor.unconsumed_tail:
        raise InvalidConstraintTokenError("约束令牌解压后过大")
    if not decompressor.eof:
        raise InvalidConstraintTokenError("约束令牌数据不完整")

    try:
        return inflated.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidConstraintTokenError("约束令牌不是合法的 UTF-8", {"reason": str(e)})


def parse_token_pairs(raw: str) -> Dict[str, str]:
    """把 key=value 串展开为完整字段名字典"""
    data: Dict[str, str] = {}
    for pair in raw.split(";"):
        key, sep, value = pair.partition("=")
        if not sep:
            raise InvalidConstraintTokenError("约束参数格式错误", {"pair": pair})
        full_name = KEY_MAPPINGS.get(key)
        if full_name is None:
            raise InvalidConstraintTokenError("未知的约束参数", {"key": key})
        if full_name in data:
            raise InvalidConstraintTokenError("约束参数重复", {"key": key})
        data[full_name] = value
    return data


def _parse_bool(name: str, value: str) -> bool:
    if value == "1":
        return True
    if value == "0":
        return False
    raise InvalidConstraintTokenError("布尔参数只能为 1 或 0", {"key": name, "value": value})


def _parse_float(name: str, value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise InvalidConstraintTokenError("数值参数无效", {"key": name, "value": value})
    if not math.isfinite(number):
        raise InvalidConstraintTokenError("数值参数无效", {"key": name, "value": value})
    return number


def _parse_meal_field(name: str, value: str) -> Dict[int, str]:
    """解析 'index#value|index#value'"""
    entries: Dict[int, str] = {}
    content = value.replace("'", "")
    for part in content.split("|"):
        if not part:
            continue
        index, sep, item = part.partition("#")
        if not sep or not _MEAL_INDEX.match(index) or not item:
            raise InvalidConstraintTokenError("餐次参数格式错误", {"key": name, "value": part})
        entries[int(index)] = item
    return entries


def _build_meals(data: Dict[str, str], amount: int) -> List[dict]:
    dates = _parse_meal_field("mealsDate", data.get("mealsDate", ""))
    times = _parse_meal_field("mealsTime", data.get("mealsTime", ""))

    meals = []
    for index in range(amount):
        date_value = None
        if index in dates:
            try:
                date_value = dt.date.fromisoformat(dates[index])
            except ValueError:
                raise InvalidConstraintTokenError("餐次日期无效", {"meal": index, "value": dates[index]})
        meals.append({"meal_number": index, "date": date_value, "time": times.get(index)})
    return meals


def decode_constraint_token(token: str, plan_id: str = "") -> PlanConstraints:
    """
    解码约束令牌

    Args:
        token: URL 中的约束令牌
        plan_id: 本次餐单标识，一并放入约束对象

    Returns:
        PlanConstraints: 结构化的规划约束

    Raises:
        InvalidConstraintTokenError: 解压失败、键值对格式错误、未知键或取值非法时
    """
    data = parse_token_pairs(_inflate_token(token))

    missing = [name for name in REQUIRED_KEYS if name not in data]
    if missing:
        raise InvalidConstraintTokenError("缺少必要的约束参数", {"missing": missing})

    price_parts = data["priceRange"].split(",")
    if len(price_parts) != 2:
        raise InvalidConstraintTokenError("价格区间格式错误", {"value": data["priceRange"]})
    price_range: Tuple[float, float] = (
        _parse_float("priceRange", price_parts[0]),
        _parse_float("priceRange", price_parts[1]),
    )

    amount_raw = data["mealsPlanningAmount"]
    if not _MEAL_INDEX.match(amount_raw):
        raise InvalidConstraintTokenError("餐数无效", {"value": amount_raw})
    amount = int(amount_raw)

    selected = tuple(c for c in data.get("selectedCanteens", "").split(",") if c)
    filters = {attr: _parse_bool(full, data[full])
               for full, attr in FILTER_FIELDS.items() if full in data}

    try:
        return PlanConstraints(
            price_range=price_range,
            selected_canteens=selected,
            filters=PlanFilters(**filters),
            with_beverage=_parse_bool("withBeverage", data["withBeverage"]),
            total_planned_budgets=_parse_float("totalPlannedBudgets", data["totalPlannedBudgets"]),
            meals_planning_amount=amount,
            meals=_build_meals(data, amount),
            plan_id=plan_id,
        )
    except PydanticValidationError as e:
        raise InvalidConstraintTokenError("约束参数取值非法", {"errors": e.errors(include_url=False, include_context=False)})
