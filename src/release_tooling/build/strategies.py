"""Builder-stage strategies and the Dockerfile they render to.

Every strategy ends with an `artifact` stage holding only the executable, so
`docker buildx build --target artifact --output type=local` exports nothing else.
"""

from __future__ import annotations

from dataclasses import dataclass

BUILD_WORKDIR = "/usr/src/app"
ARTIFACT_STAGE = "artifact"


@dataclass(frozen=True)
class BuildStrategy:
    name: str
    description: str
    build_commands: tuple[str, ...]
    artifact_path: str
    setup_commands: tuple[str, ...] = ()

    def artifact_for(self, binary_name: str) -> str:
        return self.artifact_path.format(binary=binary_name, workdir=BUILD_WORKDIR)


STRATEGIES: dict[str, BuildStrategy] = {
    "cargo-install": BuildStrategy(
        name="cargo-install",
        description="Install system libraries, then cargo install the crate",
        setup_commands=("apk add --no-cache musl-dev",),
        build_commands=("cargo install --path .",),
        artifact_path="/usr/local/cargo/bin/{binary}",
    ),
    "cargo-build": BuildStrategy(
        name="cargo-build",
        description="Raw cargo build --release; binary read from target/release",
        build_commands=("cargo build --release",),
        artifact_path="{workdir}/target/release/{binary}",
    ),
    "cargo-install-bare": BuildStrategy(
        name="cargo-install-bare",
        description="cargo install with no pre-installed system libraries",
        build_commands=("cargo install --path .",),
        artifact_path="/usr/local/cargo/bin/{binary}",
    ),
}


def get_strategy(name: str) -> BuildStrategy:
    """Look up a strategy by name. Raises KeyError listing the known names."""
    try:
        return STRATEGIES[name]
    except KeyError:
        known = ", ".join(sorted(STRATEGIES))
        msg = f"Unknown build strategy {name!r}. Use one of: {known}"
        raise KeyError(msg) from None


def render_builder_stage(strategy: BuildStrategy, builder_image: str) -> list[str]:
    lines = [
        f"FROM {builder_image} AS builder",
        f"WORKDIR {BUILD_WORKDIR}",
    ]
    lines.extend(f"RUN {c}" for c in strategy.setup_commands)
    lines.append("COPY . .")
    lines.extend(f"RUN {c}" for c in strategy.build_commands)
    return lines


def render_builder_dockerfile(
    strategy: BuildStrategy,
    builder_image: str,
    binary_name: str,
) -> str:
    """Multi-stage Dockerfile: compile in `builder`, copy the single executable into `artifact`."""
    artifact = strategy.artifact_for(binary_name)
    lines = render_builder_stage(strategy, builder_image)
    lines.extend(
        [
            "",
            f"FROM scratch AS {ARTIFACT_STAGE}",
            f"COPY --from=builder {artifact} /{binary_name}",
            "",
        ]
    )
    return "\n".join(lines)
