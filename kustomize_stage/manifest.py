"""Representation of the parts of a kustomization document needed for staging.

Only the fields that reference other files are modelled. Everything else in the
document is opaque to this library: the document is copied byte for byte when it
is staged so unknown fields pass through unchanged.

Generator `files` entries are either a bare path or a remapped key of the form
`key=path`. These are parsed once into a `GeneratorFile`:

```python
from kustomize_stage.manifest import GeneratorFile

entry = GeneratorFile.parse("credentials.pub=credentials.local.pub")
assert entry.key == "credentials.pub"
assert entry.path == "credentials.local.pub"
```
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any

import aiofiles
from aiofiles.ospath import isfile
from mashumaro import DataClassDictMixin, field_options
import yaml

from .exceptions import KustomizationParseError

__all__ = [
    "find_kustomization",
    "read_kustomization",
    "Kustomization",
    "GeneratorArgs",
    "GeneratorFile",
    "GeneratorReference",
    "PathReference",
]

_LOGGER = logging.getLogger(__name__)


# Accepted names for a kustomization file, in order of precedence
KUSTOMIZATION_FILENAMES = (
    "kustomization.yaml",
    "kustomization.yml",
    "Kustomization",
)
CONFIG_MAP_GENERATOR = "configMapGenerator"
SECRET_GENERATOR = "secretGenerator"
HELM_CHARTS = "helmCharts"
HELM_GLOBALS = "helmGlobals"
OPENAPI = "openapi"

# Chart directory used by the helm inflator when helmGlobals.chartHome is unset
DEFAULT_CHART_HOME = "charts"

# Fields holding a list of paths which may be a file or a kustomization directory
_RESOURCE_FIELDS = (
    "resources",
    "bases",
    "components",
    "generators",
    "transformers",
)
# Fields holding a list of plain file paths
_FILE_FIELDS = (
    "crds",
    "configurations",
    "patchesStrategicMerge",
)
# Fields holding a list of objects with an optional `path` attribute
_PATCH_FIELDS = (
    "patches",
    "patchesJson6902",
    "replacements",
)
_REMOTE_PREFIXES = (
    "git@",
    "github.com/",
    "gitlab.com/",
    "bitbucket.org/",
)


def is_remote(entry: str) -> bool:
    """Return true if the entry refers to a remote resource rather than a local path."""
    return "://" in entry or "?ref=" in entry or entry.startswith(_REMOTE_PREFIXES)


def is_inline(entry: str) -> bool:
    """Return true if the entry is an inline patch rather than a path."""
    return "\n" in entry


def _check_str_list(doc: dict[str, Any], key: str, context: str) -> None:
    """Assert the key, if present, holds a list of strings."""
    if (value := doc.get(key)) is None:
        return
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise KustomizationParseError(
            f"Invalid {context} field '{key}' must be a list of strings: {value}"
        )


def _compact(doc: dict[str, Any]) -> dict[str, Any]:
    """Drop keys with null values, which YAML produces for empty fields."""
    return {k: v for k, v in doc.items() if v is not None}


def _check_mapping(
    doc: Any,
    context: str,
    strs: tuple[str, ...] = (),
    lists: tuple[str, ...] = (),
) -> dict[str, Any]:
    """Assert the document is a mapping whose named fields have the right types.

    The document is returned with null values dropped.
    """
    if not isinstance(doc, dict):
        raise KustomizationParseError(f"Invalid {context} must be a mapping: {doc}")
    doc = _compact(doc)
    for key in strs:
        if not isinstance(value := doc.get(key, ""), str):
            raise KustomizationParseError(
                f"Invalid {context} field '{key}' must be a string: {value}"
            )
    for key in lists:
        _check_str_list(doc, key, context)
    return doc


def _check_list(doc: dict[str, Any], key: str) -> list[Any]:
    """Return the list held by the key, or an empty list if not present."""
    value = doc.get(key, [])
    if not isinstance(value, list):
        raise KustomizationParseError(
            f"Invalid kustomization field '{key}' must be a list: {value}"
        )
    return value


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all kustomization objects."""


@dataclass(frozen=True)
class GeneratorFile:
    """A generator `files` entry, optionally with a remapped key."""

    path: str
    """The file to read, relative to the kustomization."""

    key: str | None = None
    """The key used in the generated object when it differs from the file name."""

    @classmethod
    def parse(cls, entry: str) -> "GeneratorFile":
        """Parse an entry of the form `path` or `key=path`."""
        key, sep, path = entry.partition("=")
        if not sep:
            return cls(path=entry)
        if not key or not path:
            raise KustomizationParseError(
                f"Invalid generator files entry '{entry}' must be 'key=path'"
            )
        return cls(path=path, key=key)

    def __str__(self) -> str:
        """Render the entry as it appears in the kustomization."""
        if self.key is None:
            return self.path
        return f"{self.key}={self.path}"


def _parse_files(value: list[str]) -> list[GeneratorFile]:
    return [GeneratorFile.parse(entry) for entry in value]


@dataclass(frozen=True)
class GeneratorReference:
    """A file referenced from a generator entry."""

    generator: str
    """The name of the generator field e.g. `configMapGenerator`."""

    name: str
    """The name of the generated object."""

    field: str
    """The generator field holding the reference e.g. `envs` or `files`."""

    entry: str
    """The entry as written in the kustomization."""

    path: str
    """The path of the referenced file."""

    def __str__(self) -> str:
        """Render the reference for error messages."""
        return f"{self.generator}[{self.name}].{self.field}[{self.entry}]"


@dataclass(frozen=True)
class PathReference:
    """A path referenced from a non generator field."""

    field: str
    """The name of the kustomization field."""

    path: str
    """The path as written in the kustomization."""

    directory_allowed: bool = False
    """Whether the path may be a directory holding another kustomization."""

    tree: bool = False
    """Whether the path is a directory staged with everything below it."""

    optional: bool = False
    """Whether the path is skipped when it does not exist."""

    def __str__(self) -> str:
        """Render the reference for error messages."""
        return f"{self.field}[{self.path}]"


@dataclass
class GeneratorArgs(BaseManifest):
    """A configMapGenerator or secretGenerator entry."""

    name: str = ""
    """The name of the generated object."""

    envs: list[str] = field(default_factory=list)
    """Files of key=value pairs."""

    env: str | None = None
    """A single file of key=value pairs, the deprecated form of envs."""

    files: list[GeneratorFile] = field(
        metadata=field_options(deserialize=_parse_files), default_factory=list
    )
    """Files added as a single key each."""

    @staticmethod
    def check_doc(doc: Any, generator: str) -> dict[str, Any]:
        """Validate a generator entry from a kustomization document."""
        doc = _check_mapping(doc, f"{generator} entry", strs=("name",))
        context = f"{generator}[{doc.get('name', '')}]"
        doc = _check_mapping(doc, context, strs=("env",), lists=("envs", "files"))
        # Malformed key=path entries are reported here rather than while decoding
        _parse_files(doc.get("files", []))
        return doc

    def references(self, generator: str) -> Iterator[GeneratorReference]:
        """Return the files read by this generator."""
        paths = list(self.envs)
        if self.env:
            paths.append(self.env)
        for path in paths:
            yield GeneratorReference(
                generator=generator, name=self.name, field="envs", entry=path, path=path
            )
        for file in self.files:
            yield GeneratorReference(
                generator=generator,
                name=self.name,
                field="files",
                entry=str(file),
                path=file.path,
            )


@dataclass
class PatchRef(BaseManifest):
    """An entry of patches, patchesJson6902 or replacements."""

    path: str | None = None
    """The file holding the patch, if not inline."""


@dataclass
class OpenAPIRef(BaseManifest):
    """The openapi field naming a schema file."""

    path: str | None = None


@dataclass
class HelmChartArgs(BaseManifest):
    """A helmCharts entry, limited to the fields naming local files."""

    name: str = ""
    """The name of the chart."""

    values_file: str | None = field(
        metadata=field_options(alias="valuesFile"), default=None
    )
    """A values file, a local path or a URL."""

    additional_values_files: list[str] = field(
        metadata=field_options(alias="additionalValuesFiles"), default_factory=list
    )
    """Values files merged over the values file."""


@dataclass
class HelmGlobals(BaseManifest):
    """Settings shared by all helmCharts entries."""

    chart_home: str | None = field(
        metadata=field_options(alias="chartHome"), default=None
    )
    """Directory holding charts that are used without being pulled."""


@dataclass
class Kustomization(BaseManifest):
    """A partial representation of a kustomization document."""

    config_map_generator: list[GeneratorArgs] = field(
        metadata=field_options(alias=CONFIG_MAP_GENERATOR), default_factory=list
    )
    """ConfigMap generators."""

    secret_generator: list[GeneratorArgs] = field(
        metadata=field_options(alias=SECRET_GENERATOR), default_factory=list
    )
    """Secret generators."""

    resources: list[str] = field(default_factory=list)
    bases: list[str] = field(default_factory=list)
    components: list[str] = field(default_factory=list)
    generators: list[str] = field(default_factory=list)
    transformers: list[str] = field(default_factory=list)
    crds: list[str] = field(default_factory=list)
    configurations: list[str] = field(default_factory=list)

    patches_strategic_merge: list[str] = field(
        metadata=field_options(alias="patchesStrategicMerge"), default_factory=list
    )
    patches: list[PatchRef] = field(default_factory=list)
    patches_json6902: list[PatchRef] = field(
        metadata=field_options(alias="patchesJson6902"), default_factory=list
    )
    replacements: list[PatchRef] = field(default_factory=list)

    openapi: OpenAPIRef | None = None

    helm_charts: list[HelmChartArgs] = field(
        metadata=field_options(alias=HELM_CHARTS), default_factory=list
    )
    helm_globals: HelmGlobals | None = field(
        metadata=field_options(alias=HELM_GLOBALS), default=None
    )

    @classmethod
    def parse_doc(cls, doc: Any) -> "Kustomization":
        """Parse a Kustomization from a yaml document."""
        if doc is None:
            doc = {}
        doc = _check_mapping(
            doc, "kustomization", lists=_RESOURCE_FIELDS + _FILE_FIELDS
        )
        for key in _PATCH_FIELDS:
            if (value := doc.get(key)) is None:
                continue
            if not isinstance(value, list) or not all(
                isinstance(v, dict) and isinstance(v.get("path", ""), str)
                for v in value
            ):
                raise KustomizationParseError(
                    f"Invalid kustomization field '{key}' must be a list of objects: {value}"
                )
        for generator in (CONFIG_MAP_GENERATOR, SECRET_GENERATOR):
            doc[generator] = [
                GeneratorArgs.check_doc(entry, generator)
                for entry in _check_list(doc, generator)
            ]
        doc[HELM_CHARTS] = [
            _check_mapping(
                entry,
                f"{HELM_CHARTS} entry",
                strs=("name", "valuesFile"),
                lists=("additionalValuesFiles",),
            )
            for entry in _check_list(doc, HELM_CHARTS)
        ]
        if OPENAPI in doc:
            doc[OPENAPI] = _check_mapping(doc[OPENAPI], OPENAPI, strs=("path",))
        if HELM_GLOBALS in doc:
            doc[HELM_GLOBALS] = _check_mapping(
                doc[HELM_GLOBALS], HELM_GLOBALS, strs=("chartHome",)
            )
        return cls.from_dict(doc)

    def generator_references(self) -> Iterator[GeneratorReference]:
        """Return every file referenced by a generator in document order."""
        for args in self.config_map_generator:
            yield from args.references(CONFIG_MAP_GENERATOR)
        for args in self.secret_generator:
            yield from args.references(SECRET_GENERATOR)

    def _helm_references(self) -> Iterator[PathReference]:
        for chart in self.helm_charts:
            if chart.values_file:
                yield PathReference(
                    f"{HELM_CHARTS}[{chart.name}].valuesFile", chart.values_file
                )
            for path in chart.additional_values_files:
                yield PathReference(
                    f"{HELM_CHARTS}[{chart.name}].additionalValuesFiles", path
                )
        if self.helm_globals and self.helm_globals.chart_home:
            yield PathReference(
                f"{HELM_GLOBALS}.chartHome", self.helm_globals.chart_home, tree=True
            )
        elif self.helm_charts:
            yield PathReference(
                f"{HELM_GLOBALS}.chartHome",
                DEFAULT_CHART_HOME,
                tree=True,
                optional=True,
            )

    def path_references(self) -> Iterator[PathReference]:
        """Return every local path referenced outside of generators.

        Remote references and inline patches are skipped.
        """
        entries: list[PathReference] = []
        for key in _RESOURCE_FIELDS:
            entries.extend(
                PathReference(key, path, directory_allowed=True)
                for path in getattr(self, key)
            )
        entries.extend(PathReference("crds", path) for path in self.crds)
        entries.extend(
            PathReference("configurations", path) for path in self.configurations
        )
        entries.extend(
            PathReference("patchesStrategicMerge", path)
            for path in self.patches_strategic_merge
        )
        for key, refs in (
            ("patches", self.patches),
            ("patchesJson6902", self.patches_json6902),
            ("replacements", self.replacements),
        ):
            entries.extend(PathReference(key, ref.path) for ref in refs if ref.path)
        if self.openapi and self.openapi.path:
            entries.append(PathReference(f"{OPENAPI}.path", self.openapi.path))
        entries.extend(self._helm_references())
        for ref in entries:
            if is_remote(ref.path):
                _LOGGER.debug("Skipping remote reference %s", ref)
                continue
            if is_inline(ref.path):
                _LOGGER.debug("Skipping inline patch in %s", ref.field)
                continue
            yield ref


async def find_kustomization(path: Path) -> Path:
    """Return the kustomization file in the specified directory."""
    for name in KUSTOMIZATION_FILENAMES:
        candidate = path / name
        if await isfile(candidate):
            return candidate
    raise KustomizationParseError(
        f"No kustomization file ({', '.join(KUSTOMIZATION_FILENAMES)}) found in {path}"
    )


async def read_kustomization(path: Path) -> Kustomization:
    """Read and parse a kustomization file."""
    async with aiofiles.open(str(path), mode="rb") as ks_file:
        content = await ks_file.read()
    try:
        doc = yaml.safe_load(content)
    except yaml.YAMLError as err:
        raise KustomizationParseError(
            f"Unable to parse kustomization {path}: {err}"
        ) from err
    try:
        return Kustomization.parse_doc(doc)
    except KustomizationParseError as err:
        raise KustomizationParseError(f"Invalid kustomization {path}: {err}") from err
