"""Contratos del Core con el exterior.

- `llm.ChatModel`: backend de generación (texto, JSON con esquema, imágenes).
- `store.DataStore`: CRUD por tabla del backend relacional.

Los servicios solo conocen estos `Protocol`; los adaptadores los implementan.
"""
