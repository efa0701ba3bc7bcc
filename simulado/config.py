"""Runtime configuration read from the environment (.env supported)."""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_SOURCES = [
    "questoes_gm_araucaria_2025.json",
    "questoes_gm_pr_compilado.json",
    "simulado_gm_cascavel_2021.json",
    "simulado_gm_colombo_2022.json",
    "simulado_gm_foz_2024.json",
    "simulado_gm_lapa_2025.json",
    "simulado_gm_pitangueiras_2023.json",
    "simulado_gm_ponta_grossa_2022.json",
]


def data_dir() -> Path:
    return Path(os.environ.get("SIMULADO_DATA_DIR") or PROJECT_ROOT / "data")


def corpus_sources() -> list[str]:
    """Ordered list of corpus sources: URLs or paths resolved against the data dir."""
    raw = os.environ.get("SIMULADO_SOURCES")
    names = [s.strip() for s in raw.split(",") if s.strip()] if raw else DEFAULT_SOURCES
    base = data_dir()
    out = []
    for name in names:
        if name.startswith(("http://", "https://")) or Path(name).is_absolute():
            out.append(name)
        else:
            out.append(str(base / name))
    return out


def progress_file() -> Path:
    return Path(os.environ.get("SIMULADO_PROGRESS_FILE") or PROJECT_ROOT / "progress.json")


def fetch_timeout() -> float:
    return float(os.environ.get("SIMULADO_FETCH_TIMEOUT", "10"))
