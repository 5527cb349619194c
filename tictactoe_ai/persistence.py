import hashlib
import json
import logging
import os
import tempfile
from typing import Dict, List, Optional

from .errors import CorruptModel, PersistenceUnavailable
from .memory import PATTERN_CAPACITY, SEQUENCE_CAPACITY, OpponentModel

logger = logging.getLogger(__name__)

DATA_DIR = os.getenv("TICTACTOE_AI_DATA_DIR", "data")
MODEL_DIR = os.path.join(DATA_DIR, "model")
MODEL_FILE = os.path.join(MODEL_DIR, "opponent_model.json")
MODEL_BACKUP = MODEL_FILE + ".bak"

SAFE_MODE = os.getenv("TICTACTOE_AI_SAFE_MODE", "0") not in {"0", "false", "False", "", None}
SAFE_MODE_MESSAGE = "Safe mode enabled; opponent model will not be saved."

SCHEMA_VERSION = 1
VERSION_KEY = "version"
DATA_KEY = "data"
HASH_KEY = "hash"
PREV_KEY = "previous"


def set_safe_mode(enabled: bool) -> None:
    """Allow callers (e.g., CLI flags/tests) to toggle persistence at runtime."""
    global SAFE_MODE
    SAFE_MODE = bool(enabled)


def model_to_dict(model: OpponentModel) -> Dict[str, object]:
    return {
        "opening_counts": {str(idx): count for idx, count in sorted(model.opening_counts.items())},
        "winning_sequences": [list(seq) for seq in model.winning_sequences],
        "losing_sequences": [list(seq) for seq in model.losing_sequences],
        "player_patterns": [list(seq) for seq in model.player_patterns],
        "games_learned": model.games_learned,
    }


def _compute_hash(data: Dict[str, object]) -> str:
    payload = json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def _valid_count(value: object, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise CorruptModel(f"{what} must be a non-negative integer, got {value!r}")
    return value


def _valid_cell(value: object, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 8:
        raise CorruptModel(f"{what} must be a cell index 0-8, got {value!r}")
    return value


def _valid_sequences(raw: object, what: str, capacity: int) -> List[List[int]]:
    if not isinstance(raw, list):
        raise CorruptModel(f"{what} must be a list")
    if len(raw) > capacity:
        raise CorruptModel(f"{what} holds {len(raw)} entries, capacity is {capacity}")
    sequences = []
    for seq in raw:
        if not isinstance(seq, list) or len(seq) > 9:
            raise CorruptModel(f"{what} entries must be lists of at most 9 moves")
        cells = [_valid_cell(idx, what) for idx in seq]
        if len(set(cells)) != len(cells):
            raise CorruptModel(f"{what} entry {cells} repeats a cell")
        sequences.append(cells)
    return sequences


def model_from_dict(data: object) -> OpponentModel:
    """Build a model from its serialized form, raising CorruptModel on bad input.

    Missing keys fall back to empty values so older files still load.
    """
    if not isinstance(data, dict):
        raise CorruptModel("model data must be a mapping")

    raw_counts = data.get("opening_counts", {})
    if not isinstance(raw_counts, dict):
        raise CorruptModel("opening_counts must be a mapping")
    opening_counts: Dict[int, int] = {}
    for key, count in raw_counts.items():
        try:
            idx = int(key)
        except (TypeError, ValueError):
            raise CorruptModel(f"opening_counts key {key!r} is not a cell index") from None
        opening_counts[_valid_cell(idx, "opening_counts key")] = _valid_count(count, "opening count")

    return OpponentModel(
        opening_counts=opening_counts,
        winning_sequences=_valid_sequences(data.get("winning_sequences", []), "winning_sequences", SEQUENCE_CAPACITY),
        losing_sequences=_valid_sequences(data.get("losing_sequences", []), "losing_sequences", SEQUENCE_CAPACITY),
        player_patterns=_valid_sequences(data.get("player_patterns", []), "player_patterns", PATTERN_CAPACITY),
        games_learned=_valid_count(data.get("games_learned", 0), "games_learned"),
    )


def _extract_payload(payload: object) -> OpponentModel:
    """Validate a ``{version, data, hash}`` wrapper and return its model."""
    if not isinstance(payload, dict):
        raise CorruptModel("payload must be a mapping")
    version = payload.get(VERSION_KEY)
    if version != SCHEMA_VERSION:
        raise CorruptModel(f"unsupported schema version {version!r}")
    model = model_from_dict(payload.get(DATA_KEY))
    if payload.get(HASH_KEY) != _compute_hash(model_to_dict(model)):
        raise CorruptModel("integrity hash mismatch")
    return model


class ModelStore:
    """JSON file store for the opponent model.

    ``load`` returns None when nothing usable is on disk; ``save`` returns
    False when the write did not happen. Neither raises.
    """

    def __init__(self, file_path: str = MODEL_FILE, backup_path: Optional[str] = None, safe_mode: Optional[bool] = None) -> None:
        self.file_path = file_path
        self.backup_path = backup_path or file_path + ".bak"
        self._safe_mode = safe_mode

    @property
    def safe_mode(self) -> bool:
        return SAFE_MODE if self._safe_mode is None else self._safe_mode

    def _read_json(self, path: str) -> object:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise
        except (ValueError, RecursionError) as exc:
            # ValueError covers JSONDecodeError and UnicodeDecodeError.
            raise CorruptModel(f"{path} is not valid JSON ({exc})") from exc
        except OSError as exc:
            raise PersistenceUnavailable(f"Could not read {path} ({exc})") from exc

    def load(self) -> Optional[OpponentModel]:
        if self.safe_mode:
            return None

        try:
            data = self._read_json(self.file_path)
        except FileNotFoundError:
            data = None
        except CorruptModel as exc:
            logger.warning("Opponent model unreadable: %s", exc)
            data = None
        except PersistenceUnavailable as exc:
            logger.warning("%s; continuing with an in-memory model.", exc)
            return None

        if data is None:
            return self._load_backup()

        try:
            return _extract_payload(data)
        except CorruptModel as exc:
            logger.warning("Opponent model failed validation: %s", exc)

        previous = data.get(PREV_KEY) if isinstance(data, dict) else None
        if previous is not None:
            try:
                model = _extract_payload(previous)
                logger.warning("Opponent model restored from the last valid snapshot.")
                return model
            except CorruptModel:
                pass
        return self._load_backup()

    def _load_backup(self) -> Optional[OpponentModel]:
        try:
            data = self._read_json(self.backup_path)
            model = _extract_payload(data)
        except FileNotFoundError:
            return None
        except (CorruptModel, PersistenceUnavailable) as exc:
            logger.warning("Opponent model backup unusable (%s); starting fresh.", exc)
            return None
        logger.info("Opponent model restored from backup %s.", self.backup_path)
        return model

    def save(self, model: OpponentModel) -> bool:
        if self.safe_mode:
            logger.info(SAFE_MODE_MESSAGE)
            return False

        previous_payload = None
        try:
            existing = self._read_json(self.file_path)
            validated = _extract_payload(existing)
            data = model_to_dict(validated)
            previous_payload = {VERSION_KEY: SCHEMA_VERSION, DATA_KEY: data, HASH_KEY: _compute_hash(data)}
        except (FileNotFoundError, CorruptModel, PersistenceUnavailable):
            previous_payload = None

        data = model_to_dict(model)
        payload = {
            VERSION_KEY: SCHEMA_VERSION,
            DATA_KEY: data,
            HASH_KEY: _compute_hash(data),
            PREV_KEY: previous_payload,
        }
        dir_name = os.path.dirname(self.file_path) or "."
        temp_path = None
        try:
            os.makedirs(dir_name, exist_ok=True)
            # Only a file that validated replaces the backup.
            if previous_payload is not None:
                with open(self.file_path, "rb") as f:
                    current = f.read()
                os.makedirs(os.path.dirname(self.backup_path) or ".", exist_ok=True)
                with open(self.backup_path, "wb") as f:
                    f.write(current)
            fd, temp_path = tempfile.mkstemp(dir=dir_name, prefix=".opponent_model.", text=True)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f)
            os.replace(temp_path, self.file_path)
        except OSError as exc:
            logger.warning("Could not save opponent model (%s). Latest learning is in memory only.", exc)
            return False
        finally:
            if temp_path and os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass
        return True

    def reset(self) -> OpponentModel:
        """Replace the stored model with an empty one and return it."""
        model = OpponentModel()
        if self.save(model):
            logger.info("Opponent model reset.")
        return model

    def status(self) -> str:
        if not os.path.exists(self.file_path):
            return "missing"
        try:
            _extract_payload(self._read_json(self.file_path))
        except (CorruptModel, PersistenceUnavailable) as exc:
            return f"error ({exc})"
        return "ok"


def load_model(store: Optional[ModelStore]) -> OpponentModel:
    """Load the persisted model, or an empty one when nothing usable exists."""
    if store is None:
        return OpponentModel()
    model = store.load()
    if model is None:
        logger.info("No stored opponent model; starting fresh.")
        return OpponentModel()
    logger.info("Loaded opponent model (%d games learned).", model.games_learned)
    return model
