from typing import Dict, Any


THEMES = {
    "Sunset": {
        "bg": "#fff7ed",
        "surface": "#ffffff",
        "ink": "#1f2328",
        "muted": "#5f6c7b",
        "accent": "#f97316",
        "accent2": "#ef4444",
        "border": "#fed7aa",
        "critical": "#ef4444",
        "critical_soft": "#fee2e2",
        "overdue": "#dc2626",
    },
    "Slate": {
        "bg": "#f1f5f9",
        "surface": "#ffffff",
        "ink": "#0f172a",
        "muted": "#64748b",
        "accent": "#2563eb",
        "accent2": "#0d9488",
        "border": "#cbd5e1",
        "critical": "#e11d48",
        "critical_soft": "#ffe4e6",
        "overdue": "#be123c",
    },
}

DEFAULT_THEME = "Sunset"


def get_active_theme(theme_name: str) -> Dict[str, Any]:
    return THEMES.get(theme_name, THEMES[DEFAULT_THEME])


def get_theme_css(theme: Dict[str, Any]) -> str:
    return f"""
    <style>
    .stApp {{
        background: {theme['bg']};
        color: {theme['ink']};
    }}
    .todo-card {{
        background: {theme['surface']};
        border: 1px solid {theme['border']};
        border-radius: 10px;
        padding: 12px 16px;
        margin-bottom: 8px;
    }}
    .todo-card.critical {{
        border-left: 6px solid {theme['critical']};
        background: {theme['critical_soft']};
    }}
    .todo-meta {{
        color: {theme['muted']};
        font-size: 0.85rem;
    }}
    .todo-overdue {{
        color: {theme['overdue']};
        font-weight: 600;
    }}
    .todo-badge {{
        background: {theme['critical']};
        color: #ffffff;
        border-radius: 999px;
        padding: 1px 8px;
        font-size: 0.75rem;
        margin-left: 6px;
    }}
    </style>
    """
