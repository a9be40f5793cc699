"""
Configuración común de pytest.

Las variables de entorno se fijan antes de que cualquier test importe
`config`, para que `settings` apunte a SQLite en memoria y nunca use una
API key real.
"""

import os

os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key-not-used-in-unit-tests")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("GENERATION_TIMEOUT_SECONDS", "5")
