from resume_assistant.app.design.theme import Theme, resolve_theme


def test_resolve_theme_defaults():
    """Test that an empty request yields the default theme."""
    theme = resolve_theme()
    assert theme == Theme()
    assert (theme.font_family, theme.color_hex) == ("Arial", "#2563eb")
    assert (theme.layout, theme.spacing, theme.density) == ("single-column", "normal", "comfortable")
    assert theme.ats_safe
    assert theme.warnings == []


def test_resolve_theme_normalizes_values():
    """Test font, color and layout normalization."""
    theme = resolve_theme(
        font_family="georgia",
        color_hex="1E3A8A",
        layout="Two Column",
        spacing="Relaxed",
        density="compact",
    )
    assert theme.font_family == "Georgia"
    assert theme.color_hex == "#1e3a8a"
    assert theme.layout == "two-column"
    assert theme.spacing == "relaxed"
    assert theme.density == "compact"
    assert not theme.ats_safe
    assert theme.warnings == []


def test_resolve_theme_color_forms():
    """Test short hex without '#' and color names."""
    assert resolve_theme(color_hex="abc").color_hex == "#aabbcc"
    assert resolve_theme(color_hex="navy").color_hex == "#1e3a8a"


def test_resolve_theme_unknown_values_fall_back_with_warnings():
    """Test that unknown values are replaced by defaults, never guessed."""
    theme = resolve_theme(font_family="Wingdings", color_hex="notacolor", spacing="huge")
    assert theme.font_family == "Arial"
    assert theme.color_hex == "#2563eb"
    assert theme.spacing == "normal"
    assert theme.warnings == [
        'Font "Wingdings" is not recognized. Using Arial.',
        "Color 'notacolor' is not recognized. Using #2563eb.",
        "Unknown spacing 'huge'. Using normal.",
    ]
