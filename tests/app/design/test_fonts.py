from resume_assistant.app.design.fonts import (
    DEFAULT_FONT_CSS,
    get_available_fonts,
    get_font_family_css,
    is_ats_safe,
    is_professional,
    normalize_font_name,
    validate_font,
)


def test_validate_font_by_name_and_alias():
    """Test case-insensitive lookup with aliases and quotes."""
    assert validate_font("TNR").name == "Times New Roman"
    assert validate_font("  helvetica   NEUE ").name == "Helvetica"
    assert normalize_font_name("'open  sans'") == "Open Sans"
    assert validate_font("Wingdings") is None
    assert validate_font(None) is None


def test_font_flags():
    """Test ATS safety and professional flags."""
    assert is_ats_safe("georgia")
    assert not is_ats_safe("Comic Sans MS")
    assert not is_professional("Courier New")
    assert is_professional("Calibri")


def test_get_font_family_css():
    """Test CSS values with quoted multi-word names."""
    assert get_font_family_css("Times New Roman") == '"Times New Roman", Georgia, serif'
    assert get_font_family_css("arial") == "Arial, Helvetica, sans-serif"
    assert get_font_family_css("unknown") == DEFAULT_FONT_CSS


def test_get_available_fonts():
    """Test that only professional fonts are listed, sorted."""
    fonts = get_available_fonts()
    assert fonts == sorted(fonts)
    assert "Arial" in fonts
    assert "Courier New" not in fonts
