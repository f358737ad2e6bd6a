"""
确定性随机数工具
xoshiro128** 生成器、字符串到种子的哈希、可复现的洗牌与抽取

同一种子、同一调用次数必然得到同样的结果；每次规划请求各自构造生成器，不跨请求共享。
"""

from typing import Callable, List, Sequence, TypeVar

T = TypeVar("T")

MASK32 = 0xFFFFFFFF
TWO_POW_32 = 4294967296.0

# 与种子异或，避免 seed=0 时出现全零状态
_STATE_SALTS = (0x9E3779B9, 0x85EBCA6B, 0xC2B2AE35)
_HASH_MULTIPLIER = 0x5BD1E995
# 抽取前先丢弃的输出个数，改善小种子差异下的分布
_PICK_WARMUP = 5


def _rotl(x: int, k: int) -> int:
    return ((x << k) | (x >> (32 - k))) & MASK32


def xoshiro128ss(seed: int) -> Callable[[], float]:
    """
    以32位种子构造 xoshiro128** 生成器

    Args:
        seed: 32位无符号整数种子

    Returns:
        Callable[[], float]: 每次调用返回 [0, 1) 区间内的浮点数
    """
    seed &= MASK32
    state = [seed] + [seed ^ salt for salt in _STATE_SALTS]

    def next_float() -> float:
        s0, s1, s2, s3 = state
        result = (_rotl((s1 * 5) & MASK32, 7) * 9) & MASK32

        t = (s1 << 9) & MASK32
        s2 ^= s0
        s3 ^= s1
        s1 ^= s2
        s0 ^= s3
        s2 ^= t
        s3 = _rotl(s3, 11)

        state[:] = [s0, s1, s2, s3]
        return result / TWO_POW_32

    return next_float


def hash_to_seed(value: str) -> int:
    """把任意字符串散列为32位种子（顺序敏感）"""
    h = 0
    for char in value:
        h = ((h ^ ord(char)) * _HASH_MULTIPLIER) & MASK32
        h ^= h >> 15
    return h


def seeded_shuffle(items: Sequence[T], seed: int) -> List[T]:
    """Fisher-Yates 洗牌，返回新列表"""
    rng = xoshiro128ss(seed)
    result = list(items)
    m = len(result)
    while m:
        i = int(rng() * m)
        m -= 1
        result[m], result[i] = result[i], result[m]
    return result


def seeded_pick(items: Sequence[T], seed: int) -> T:
    """按种子从非空序列中等概率取一个元素"""
    if not items:
        raise ValueError("cannot pick from an empty sequence")
    rng = xoshiro128ss(seed)
    for _ in range(_PICK_WARMUP):
        rng()
    return items[int(rng() * len(items))]
