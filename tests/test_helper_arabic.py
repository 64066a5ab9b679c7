from shared.helper.HelperArabic import normalize_arabic


def test_hamza_alif_variants_are_equivalent():
    assert normalize_arabic("أحمد") == normalize_arabic("احمد") == normalize_arabic("إحمد")
    assert normalize_arabic("آمن") == "امن"


def test_diacritics_are_stripped():
    assert normalize_arabic("مُحَمَّد") == "محمد"
    assert normalize_arabic("أَحْمَدُ") == "احمد"


def test_ta_marbuta_and_alif_maksura():
    assert normalize_arabic("مدرسة") == "مدرسه"
    assert normalize_arabic("مستشفى") == "مستشفي"


def test_non_arabic_text_passes_through():
    assert normalize_arabic("  Invoice 42 ") == "Invoice 42"
    assert normalize_arabic("") == ""
