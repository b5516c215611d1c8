"""Write a standalone Dockerfile (builder stage + runtime stage) for one build strategy.

The publish pipeline builds the two stages separately; this renders them into one file
for local `docker build` use and for reviewing what a strategy does.
"""

from __future__ import annotations

import sys
from pathlib import Path

from release_tooling.build.strategies import get_strategy, render_builder_stage
from release_tooling.docker.assemble import RUNTIME_BIN_DIR


def generate_dockerfile(
    strategy_name: str,
    builder_image: str,
    runtime_image: str,
    binary_name: str = "app",
) -> str:
    """Builder stage compiles; final stage copies only the executable and runs it without a shell."""
    strategy = get_strategy(strategy_name)
    artifact = strategy.artifact_for(binary_name)
    return "\n".join(
        [
            *render_builder_stage(strategy, builder_image),
            "",
            f"FROM {runtime_image}",
            f"COPY --from=builder {artifact} {RUNTIME_BIN_DIR}/{binary_name}",
            f'ENTRYPOINT [ "{binary_name}" ]',
            "",
        ]
    )


def run(
    strategy_name: str,
    builder_image: str,
    runtime_image: str,
    binary_name: str = "app",
    output_path: Path | None = None,
) -> int:
    """CLI entry: print or write the Dockerfile. Returns 0 on success, 1 on unknown strategy."""
    try:
        content = generate_dockerfile(strategy_name, builder_image, runtime_image, binary_name)
    except KeyError as e:
        print(f"❌ {e.args[0]}", file=sys.stderr)
        return 1
    if output_path is None:
        sys.stdout.write(content)
        return 0
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content)
    print(f"✅ Generated: {output_path}")
    return 0
