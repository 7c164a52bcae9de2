import json
from pathlib import Path
from typing import Dict, List, NamedTuple

from deployment.constants import CASM_SUFFIX, SIERRA_SUFFIX
from deployment.exceptions import ArtifactError

ABI = List[Dict]


def casm_filepath(sierra_filepath: Path) -> Path:
    """Returns the CASM sibling of a Sierra contract class file."""
    name = sierra_filepath.name
    if not name.endswith(SIERRA_SUFFIX):
        raise ArtifactError(f"{sierra_filepath} is not a '*{SIERRA_SUFFIX}' contract class file.")
    return sierra_filepath.with_name(name[: -len(SIERRA_SUFFIX)] + CASM_SUFFIX)


def _read_document(filepath: Path) -> str:
    try:
        text = filepath.read_text()
    except OSError as e:
        raise ArtifactError(f"Cannot read contract artifact {filepath}: {e}") from e
    try:
        json.loads(text)
    except ValueError as e:
        raise ArtifactError(f"Contract artifact {filepath} is not valid JSON: {e}") from e
    return text


def _get_abi(sierra: str, filepath: Path) -> ABI:
    abi = json.loads(sierra).get("abi")
    if isinstance(abi, str):
        # older compilers embed the ABI as a JSON string
        abi = json.loads(abi)
    if not isinstance(abi, list):
        raise ArtifactError(f"Contract class {filepath} has no ABI.")
    return abi


class ContractArtifact(NamedTuple):
    """A compiled contract class and its compiled verification (CASM) data."""

    name: str
    sierra_filepath: Path
    casm_filepath: Path
    sierra: str
    casm: str
    abi: ABI

    @classmethod
    def from_filepath(cls, name: str, filepath: Path) -> "ContractArtifact":
        filepath = Path(filepath)
        casm_path = casm_filepath(filepath)
        sierra = _read_document(filepath)
        casm = _read_document(casm_path)
        return cls(
            name=name,
            sierra_filepath=filepath,
            casm_filepath=casm_path,
            sierra=sierra,
            casm=casm,
            abi=_get_abi(sierra, filepath),
        )

    @property
    def constructor_inputs(self) -> List[Dict]:
        """Returns the ordered constructor inputs declared in the ABI."""
        for entry in self.abi:
            if entry.get("type") == "constructor":
                return list(entry.get("inputs", []))
        return []


def abi_has_function(abi: ABI, function_name: str) -> bool:
    """Returns True if the ABI exposes a function, either directly or through an interface."""
    for entry in abi:
        if entry.get("type") == "function" and entry.get("name") == function_name:
            return True
        if entry.get("type") == "interface":
            items = entry.get("items", [])
            if any(item.get("name") == function_name for item in items):
                return True
    return False


def load_artifacts(
    declarations: Dict[str, str], base_dir: Path = Path(".")
) -> Dict[str, ContractArtifact]:
    """Loads every declared contract artifact, preserving declaration order."""
    artifacts = dict()
    for name, path in declarations.items():
        filepath = Path(path)
        if not filepath.is_absolute():
            filepath = base_dir / filepath
        artifacts[name] = ContractArtifact.from_filepath(name=name, filepath=filepath)
    return artifacts
