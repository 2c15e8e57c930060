"""Core (UI-agnostic) dashboard logic.

This package contains:
- data loading (JSON/CSV -> pandas) and per-dataset normalization
- selection normalization
- filter/aggregate and cross-dataset join helpers
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict, Plotly -> figure JSON)
"""
