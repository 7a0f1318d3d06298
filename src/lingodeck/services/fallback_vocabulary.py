"""Bundled vocabulary used when a catalog cannot be fetched."""
from typing import Dict, List

from lingodeck.models.vocabulary_models import VocabularyItem


def _word(id, word, translation, romanization, category, difficulty) -> VocabularyItem:
    return VocabularyItem(
        id=id,
        term=word,
        translation=translation,
        romanization=romanization,
        category=category,
        base_difficulty=difficulty,
    )


FALLBACK_VOCABULARY: Dict[str, List[VocabularyItem]] = {
    "cs-vi": [
        # Greetings & politeness
        _word(1, "ahoj", "xin chào", "sin chào", "greetings", 1),
        _word(2, "děkuji", "cảm ơn", "cảm ơn", "greetings", 1),
        _word(41, "prosím", "làm ơn", "làm ơn", "greetings", 1),
        _word(42, "promiňte", "xin lỗi", "sin lỗi", "greetings", 1),
        _word(43, "nashledanou", "tạm biệt", "tạm biệt", "greetings", 1),
        # Basics
        _word(3, "ano", "vâng", "vâng", "basics", 1),
        _word(4, "ne", "không", "không", "basics", 1),
        _word(15, "dům", "nhà", "nhà", "basics", 1),
        _word(16, "škola", "trường học", "trường học", "basics", 2),
        _word(17, "kniha", "sách", "sách", "basics", 2),
        _word(20, "práce", "công việc", "công việc", "basics", 2),
        # Numbers
        _word(7, "jeden", "một", "một", "numbers", 1),
        _word(8, "dva", "hai", "hai", "numbers", 1),
        _word(9, "tři", "ba", "ba", "numbers", 1),
        _word(10, "čtyři", "bốn", "bốn", "numbers", 2),
        _word(11, "pět", "năm", "năm", "numbers", 2),
        # Family
        _word(12, "rodina", "gia đình", "gia đình", "family", 2),
        _word(13, "matka", "mẹ", "mẹ", "family", 1),
        _word(14, "otec", "bố", "bố", "family", 1),
        # Food & drink
        _word(5, "voda", "nước", "nước", "food", 1),
        _word(6, "chléb", "bánh mì", "bánh mì", "food", 2),
    ],
    "vi-zh": [
        _word(21, "xin chào", "你好", "nǐ hǎo", "greetings", 1),
        _word(22, "cảm ơn", "谢谢", "xiè xie", "greetings", 1),
        _word(23, "một", "一", "yī", "numbers", 1),
        _word(24, "hai", "二", "èr", "numbers", 1),
        _word(25, "ba", "三", "sān", "numbers", 1),
        _word(26, "nước", "水", "shuǐ", "food", 1),
        _word(27, "cơm", "米饭", "mǐ fàn", "food", 2),
        _word(28, "gia đình", "家庭", "jiā tíng", "family", 2),
        _word(29, "mẹ", "妈妈", "mā ma", "family", 1),
        _word(30, "bố", "爸爸", "bà ba", "family", 1),
    ],
    "vi-en": [
        _word(31, "xin chào", "hello", "", "greetings", 1),
        _word(32, "cảm ơn", "thank you", "", "greetings", 1),
        _word(33, "một", "one", "", "numbers", 1),
        _word(34, "hai", "two", "", "numbers", 1),
        _word(35, "ba", "three", "", "numbers", 1),
        _word(36, "nước", "water", "", "food", 1),
        _word(37, "bánh mì", "bread", "", "food", 1),
        _word(38, "gia đình", "family", "", "family", 1),
        _word(39, "nhà", "house", "", "basics", 1),
        _word(40, "trường học", "school", "", "basics", 2),
    ],
}


def fallback_for(language_pair: str) -> List[VocabularyItem]:
    """Bundled words for ``language_pair``; empty for unknown pairs."""
    return list(FALLBACK_VOCABULARY.get(language_pair, []))
