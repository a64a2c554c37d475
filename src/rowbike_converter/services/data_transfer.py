"""JSON export and import of everything a store holds for one user."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from ..db.store import CalibrationStore
from ..exceptions import ValidationError
from ..models import CalibrationProfile, UserProfile, Workout

logger = logging.getLogger(__name__)

COLLECTIONS = ("profiles", "calibrations", "workouts")


def export_data(store: CalibrationStore) -> str:
    """Serialize profiles, calibrations and workouts to a JSON document."""
    document = {
        "profiles": [p.to_dict() for p in store.list_user_profiles()],
        "calibrations": [c.to_dict() for c in store.list_all()],
        "workouts": [w.to_dict() for w in store.list_workouts()],
        "exportDate": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
    return json.dumps(document, indent=2)


def _parse_collection(items: Any, parse: Callable[[Dict[str, Any]], Any]) -> List[Any]:
    if not isinstance(items, list):
        raise TypeError(f"expected a list, got {type(items).__name__}")
    return [parse(item) for item in items]


def import_data(store: CalibrationStore, json_data: str) -> Dict[str, int]:
    """Save every item of an exported document through the store.

    Items keep their ids, so importing into the store they came from
    replaces rather than duplicates. Nothing is transactional: a collection
    that fails to parse is skipped and the others still import.

    Returns:
        Number of items imported per collection.

    Raises:
        ValidationError: The document is not a JSON object.
        StorageFailure: A save failed; earlier saves are kept.
    """
    try:
        data = json.loads(json_data)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Import data is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("Import data must be a JSON object")

    parsers = {
        "profiles": (UserProfile.from_dict, store.save_user_profile),
        "calibrations": (CalibrationProfile.from_dict, store.save),
        "workouts": (Workout.from_dict, store.save_workout),
    }

    counts = {name: 0 for name in COLLECTIONS}
    for name in COLLECTIONS:
        if not data.get(name):
            continue

        parse, save = parsers[name]
        try:
            items = _parse_collection(data[name], parse)
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            logger.warning(f"Skipping {name} during import: {e}")
            continue

        for item in items:
            save(item)
            counts[name] += 1

    logger.info(
        f"Imported {counts['profiles']} profiles, {counts['calibrations']} calibrations, "
        f"{counts['workouts']} workouts"
    )
    return counts
