"""
确定性伪随机数工具。

不使用标准库 random：其播种行为不是跨版本的稳定契约，
而每日情话必须在任何进程、任何时间对同一天给出相同结果。
种子由 FNV-1a 哈希得到，序列由 SplitMix64 生成。
"""

MASK32 = 0xFFFFFFFF
MASK64 = 0xFFFFFFFFFFFFFFFF

FNV32_OFFSET = 0x811C9DC5
FNV32_PRIME = 0x01000193
FNV64_OFFSET = 0xCBF29CE484222325
FNV64_PRIME = 0x100000001B3


def fnv1a_32(text: str) -> int:
    h = FNV32_OFFSET
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * FNV32_PRIME) & MASK32
    return h


def fnv1a_64(text: str) -> int:
    h = FNV64_OFFSET
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * FNV64_PRIME) & MASK64
    return h


class SplitMix64:
    """SplitMix64 (Steele, Lea & Flood 2014)，64 位状态，输出与平台无关"""

    GAMMA = 0x9E3779B97F4A7C15

    def __init__(self, seed: int):
        self.state = seed & MASK64

    def next_u64(self) -> int:
        self.state = (self.state + self.GAMMA) & MASK64
        z = self.state
        z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & MASK64
        z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & MASK64
        return z ^ (z >> 31)

    def random(self) -> float:
        """[0, 1) 区间的 53 位浮点数"""
        return (self.next_u64() >> 11) * (1.0 / (1 << 53))

    def randbelow(self, n: int) -> int:
        """[0, n) 区间的均匀整数，拒绝采样消除取模偏差"""
        if n <= 0:
            raise ValueError("randbelow requires n > 0")
        limit = (1 << 64) - ((1 << 64) % n)
        while True:
            x = self.next_u64()
            if x < limit:
                return x % n


def rng_for(*parts) -> SplitMix64:
    """用 "a:b:c" 形式的种子串构造生成器"""
    return SplitMix64(fnv1a_64(":".join(str(p) for p in parts)))
