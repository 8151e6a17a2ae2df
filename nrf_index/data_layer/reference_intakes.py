"""Reference intake (Daily Value) loader for NRF scoring.

Loads daily reference intakes by named profile from a JSON reference file
and merges them with user overrides.

File layout::

    {
        "default_profile": "nrf93_2009",
        "profiles": {
            "nrf93_2009": {"protein": 50, "fiber": 25, ...},
            ...
        }
    }

Nutrient keys are matched by name (see ``Nutrient.from_string``), so key
order in the file carries no meaning.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from nrf_index.data_layer.exceptions import ShapeMismatchError
from nrf_index.data_layer.models import Nutrient, ReferenceIntakeTable

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_PATH = Path(__file__).resolve().parent / "reference" / "daily_values.json"


class ReferenceIntakeLoader:
    """Loads reference intake profiles from a JSON file.

    The file is read once, on first access.
    """

    def __init__(self, json_path: Union[str, Path] = DEFAULT_REFERENCE_PATH):
        """Initialize loader with path to the reference JSON.

        Args:
            json_path: Path to a daily values JSON file (defaults to the
                packaged reference data)
        """
        self.json_path = Path(json_path)
        self._data: Optional[Dict[str, Any]] = None

    def _load_data(self) -> Dict[str, Any]:
        """Load and cache JSON data from file.

        Raises:
            FileNotFoundError: If JSON file doesn't exist
        """
        if self._data is None:
            if not self.json_path.exists():
                raise FileNotFoundError(f"Reference intake file not found: {self.json_path}")

            with open(self.json_path, "r") as f:
                self._data = json.load(f)
            logger.debug("Loaded reference intakes from %s", self.json_path)

        return self._data

    @property
    def default_profile(self) -> str:
        """Profile used when none is requested (first profile if unset)."""
        data = self._load_data()
        default = data.get("default_profile")
        if default:
            return default
        profiles = self.get_available_profiles()
        if not profiles:
            raise KeyError(f"No reference profiles defined in {self.json_path}")
        return profiles[0]

    def load_profile(self, profile: Optional[str] = None) -> ReferenceIntakeTable:
        """Load the reference intake table for a profile.

        Args:
            profile: Profile key (e.g., "nrf93_2009"); None for the default

        Returns:
            ReferenceIntakeTable for the profile

        Raises:
            KeyError: If the profile is not defined
            ShapeMismatchError: If the profile does not list exactly the 12 nutrients
            InvalidInputError: If a value is not a positive number
        """
        profile = profile or self.default_profile
        profiles = self._load_data().get("profiles", {})

        if profile not in profiles:
            raise KeyError(
                f"Reference profile '{profile}' not found. "
                f"Available: {list(profiles.keys())}"
            )

        return ReferenceIntakeTable(profiles[profile], name=profile)

    def get_available_profiles(self) -> List[str]:
        return list(self._load_data().get("profiles", {}).keys())


def resolve_reference_intakes(
    loader: ReferenceIntakeLoader,
    profile: Optional[str] = None,
    overrides: Optional[Dict[str, Optional[float]]] = None
) -> ReferenceIntakeTable:
    """Resolve final reference intakes by merging a profile with overrides.

    Override precedence rules:
    1. Load the reference profile
    2. Replace values for explicitly listed nutrients only
    3. None override values are ignored (profile value used)
    4. Names that are not scored nutrients are ignored, with a warning

    Args:
        loader: ReferenceIntakeLoader instance
        profile: Profile key; None for the file's default profile
        overrides: Nutrient name -> replacement reference intake

    Returns:
        ReferenceIntakeTable with resolved values

    Raises:
        KeyError: If the profile is not defined
        InvalidInputError: If an override is not a positive number
        ShapeMismatchError: If two override names refer to the same nutrient
    """
    reference = loader.load_profile(profile)
    if not overrides:
        return reference

    merged: Dict[Nutrient, float] = dict(reference.intakes)
    seen = set()
    duplicated = []
    for name, value in overrides.items():
        nutrient = Nutrient.from_string(name)
        if nutrient is None:
            logger.warning("Ignoring override for unknown nutrient %r", name)
            continue
        if nutrient in seen:
            duplicated.append(nutrient.value)
            continue
        seen.add(nutrient)
        if value is None:
            continue
        merged[nutrient] = value

    if duplicated:
        raise ShapeMismatchError("reference overrides", duplicated=duplicated)
    return ReferenceIntakeTable(merged, name=f"{reference.name}+overrides")
