"""Classification of project files into platform-coupled assets.

Each rule is a ``ClassificationRule``: a path matcher plus an extractor that
turns one matching file into zero or more ``DetectedAsset`` records. Rules
are evaluated in order against every file and all matches are kept.
"""

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from liberate.config import Settings
from liberate.domain.models import (
    CONFIG_REFERENCE_DETAIL,
    AssetKind,
    DetectedAsset,
    FileSet,
)

TABLE_PATTERN = re.compile(
    r'CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?(?:"?\w+"?\.)?"?(\w+)"?',
    re.IGNORECASE,
)
POLICY_PATTERN = re.compile(
    r"""CREATE\s+POLICY\s+(?:["']([^"']+)["']|(\w+))\s+ON\s+(?:"?\w+"?\.)?"?(\w+)"?""",
    re.IGNORECASE,
)
CONFIG_FUNCTION_PATTERN = re.compile(r"""^\s*\[functions\.["']?([^\]"']+)["']?\]""", re.MULTILINE)


@dataclass
class ClassificationContext:
    """Facts about the whole file set that single-file rules may need."""

    handler_names: set[str] = field(default_factory=set)
    config_names_seen: set[str] = field(default_factory=set)


Matcher = Callable[[str], bool]
Extractor = Callable[[str, str, ClassificationContext], Iterable[DetectedAsset]]


@dataclass(frozen=True)
class ClassificationRule:
    name: str
    matcher: Matcher
    extractor: Extractor


def handler_path_pattern(config: Settings) -> re.Pattern[str]:
    """Return the path template for function handler entry files."""
    return re.compile(
        rf"(?:^|/){re.escape(config.functions_root)}/([^/]+)/{re.escape(config.handler_entry_file)}$"
    )


def handler_path(config: Settings, name: str) -> str:
    """Return the path a handler named ``name`` is expected at."""
    return f"{config.functions_root}/{name}/{config.handler_entry_file}"


def is_migration_script(config: Settings, path: str) -> bool:
    """Return True for scripts inside a migrations directory."""
    directories = path.split("/")[:-1]
    if config.migrations_dir not in directories:
        return False
    return any(path.lower().endswith(ext) for ext in config.migration_extensions)


def extract_tables(path: str, text: str) -> list[DetectedAsset]:
    return [
        DetectedAsset(kind=AssetKind.TABLE, name=match.group(1), source_path=path, details="SQL table")
        for match in TABLE_PATTERN.finditer(text)
    ]


def extract_policies(path: str, text: str) -> list[DetectedAsset]:
    assets = []
    for match in POLICY_PATTERN.finditer(text):
        policy = match.group(1) or match.group(2)
        table = match.group(3)
        assets.append(
            DetectedAsset(
                kind=AssetKind.ACCESS_POLICY,
                name=f"{table}: {policy}",
                source_path=path,
                details="row level security",
            )
        )
    return assets


def extract_config_functions(text: str) -> list[str]:
    """Return function names declared in a platform config file, in order."""
    return [match.group(1).strip() for match in CONFIG_FUNCTION_PATTERN.finditer(text)]


def build_rules(config: Settings) -> list[ClassificationRule]:
    """Build the ordered rule list for a project layout."""
    handler_pattern = handler_path_pattern(config)

    def extract_handler(path: str, text: str, _ctx: ClassificationContext):
        match = handler_pattern.search(path)
        if match is None:
            return []
        return [
            DetectedAsset(
                kind=AssetKind.FUNCTION_HANDLER,
                name=match.group(1),
                source_path=path,
                details=f"{len(text)} characters",
            )
        ]

    def extract_migration(path: str, text: str, _ctx: ClassificationContext):
        return [*extract_tables(path, text), *extract_policies(path, text)]

    def extract_config(_path: str, text: str, ctx: ClassificationContext):
        assets = []
        for name in extract_config_functions(text):
            if name in ctx.handler_names or name in ctx.config_names_seen:
                continue
            ctx.config_names_seen.add(name)
            assets.append(
                DetectedAsset(
                    kind=AssetKind.FUNCTION_HANDLER,
                    name=name,
                    source_path=handler_path(config, name),
                    details=CONFIG_REFERENCE_DETAIL,
                )
            )
        return assets

    return [
        ClassificationRule(
            name="function-handler",
            matcher=lambda path: handler_pattern.search(path) is not None,
            extractor=extract_handler,
        ),
        ClassificationRule(
            name="migration-script",
            matcher=lambda path: is_migration_script(config, path),
            extractor=extract_migration,
        ),
        ClassificationRule(
            name="platform-config",
            matcher=lambda path: path == config.config_file,
            extractor=extract_config,
        ),
    ]


def classify(
    file_set: FileSet,
    config: Settings | None = None,
    rules: list[ClassificationRule] | None = None,
) -> list[DetectedAsset]:
    """Classify every file in ``file_set`` into detected assets.

    Deterministic and side-effect free. Assets come back in file order, then
    rule order, then in-file match order. Repeated tables or policies across
    migration files are kept as separate assets.

    Args:
        file_set: Ingested project files
        config: Layout configuration, defaults to Settings()
        rules: Optional rule list overriding build_rules(config)

    Returns:
        Ordered list of detected assets
    """
    config = config if config is not None else Settings()
    rules = rules if rules is not None else build_rules(config)

    handler_pattern = handler_path_pattern(config)
    ctx = ClassificationContext(
        handler_names={
            match.group(1) for path in file_set if (match := handler_pattern.search(path))
        }
    )

    assets: list[DetectedAsset] = []
    for path in file_set:
        matching = [rule for rule in rules if rule.matcher(path)]
        if not matching:
            continue
        text = file_set.text(path)
        for rule in matching:
            assets.extend(rule.extractor(path, text, ctx))

    return assets
