"""Static lexicon tables for deterministic name synthesis.

Surnames, per-character readings and glosses, gender-keyed given-name
templates, and the overused names the provider is told to avoid.
"""

from ..core.models import Gender

# Common surnames; the prompt builder draws its surname hint from here.
SURNAME_LIST: tuple[str, ...] = (
    "王", "李", "张", "刘", "陈", "杨", "赵", "黄", "周", "吴",
    "徐", "孙", "胡", "朱", "高", "林", "何", "郭", "马", "罗",
    "梁", "宋", "郑", "谢", "韩", "唐", "冯", "于", "董", "萧",
)

SURNAME_PINYIN: dict[str, str] = {
    "王": "Wáng", "李": "Lǐ", "张": "Zhāng", "刘": "Liú", "陈": "Chén",
    "杨": "Yáng", "赵": "Zhào", "黄": "Huáng", "周": "Zhōu", "吴": "Wú",
    "徐": "Xú", "孙": "Sūn", "胡": "Hú", "朱": "Zhū", "高": "Gāo",
    "林": "Lín", "何": "Hé", "郭": "Guō", "马": "Mǎ", "罗": "Luó",
    "梁": "Liáng", "宋": "Sòng", "郑": "Zhèng", "谢": "Xiè", "韩": "Hán",
    "唐": "Táng", "冯": "Féng", "于": "Yú", "董": "Dǒng", "萧": "Xiāo",
}

CHAR_PINYIN: dict[str, str] = {
    "志": "Zhì", "明": "Míng", "建": "Jiàn", "华": "Huá", "伟": "Wěi", "强": "Qiáng",
    "俊": "Jùn", "杰": "Jié", "文": "Wén", "昊": "Hào", "雅": "Yǎ", "昆": "Kūn",
    "美": "Měi", "丽": "Lì", "慧": "Huì", "敏": "Mǐn", "雨": "Yǔ", "晴": "Qíng",
    "诗": "Shī", "涵": "Hán", "婉": "Wǎn", "如": "Rú", "和": "Hé", "谐": "Xié",
    "光": "Guāng", "希": "Xī", "望": "Wàng", "未": "Wèi", "来": "Lái", "好": "Hǎo",
    "智": "Zhì",
}

CHAR_MEANING: dict[str, str] = {
    "志": "Ambition", "明": "Bright", "建": "Build", "华": "Splendor",
    "伟": "Great", "强": "Strength", "俊": "Talented", "杰": "Outstanding",
    "文": "Cultured", "昊": "Vast sky", "雅": "Elegant", "昆": "Harmonious",
    "美": "Beautiful", "丽": "Beautiful", "慧": "Wisdom", "敏": "Agile",
    "雨": "Rain", "晴": "Clear", "诗": "Poetry", "涵": "Depth",
    "婉": "Graceful", "如": "As/like", "和": "Harmony", "谐": "Harmony",
    "光": "Light", "希": "Hope", "望": "Hope", "未": "Future",
    "来": "Coming", "好": "Good", "智": "Wisdom",
}

DEFAULT_SURNAME_PINYIN = "Wáng"
DEFAULT_CHAR_PINYIN = "Míng"
DEFAULT_CHAR_MEANING = "Meaningful"

FALLBACK_GIVEN_NAMES: dict[Gender, tuple[str, ...]] = {
    Gender.MALE: ("志明", "建华", "伟强", "俊杰", "文昊", "雅昆"),
    Gender.FEMALE: ("雅文", "美丽", "慧敏", "雨晴", "诗涵", "婉如"),
    Gender.OTHER: ("明智", "美好", "和谐", "光明", "希望", "未来"),
}

# Stock combinations providers fall back on when left unconstrained.
OVERUSED_NAMES: tuple[str, ...] = ("雨晴", "志明", "雅文", "建华", "小明", "美丽", "伟强")


def surname_pinyin(surname: str) -> str:
    return SURNAME_PINYIN.get(surname, DEFAULT_SURNAME_PINYIN)


def pinyin_for_char(ch: str) -> str:
    return CHAR_PINYIN.get(ch, DEFAULT_CHAR_PINYIN)


def meaning_for_char(ch: str) -> str:
    return CHAR_MEANING.get(ch, DEFAULT_CHAR_MEANING)


def given_names_for(gender: Gender) -> tuple[str, ...]:
    return FALLBACK_GIVEN_NAMES.get(gender, FALLBACK_GIVEN_NAMES[Gender.OTHER])
