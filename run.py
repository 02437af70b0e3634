#!/usr/bin/env python3
"""CLI entry point for bpmn2bpms."""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from bpmn2bpms.workflow.graph import compile_workflow
from bpmn2bpms.errors import CompileError
from bpmn2bpms.config import Config


def run_compile(target: str, model_dir: str, output_dir: str) -> int:
    """Compile one model directory for a target engine."""
    print("=" * 60)
    print("🚀 BPMN to BPMS Compiler")
    print("=" * 60)

    if not Path(model_dir).is_dir():
        print(f"❌ Model directory not found: {model_dir}")
        return 1

    Config.ensure_dirs(Path(output_dir))

    state = {
        "target": target,
        "model_dir": model_dir,
        "output_dir": output_dir,
        "artifacts": {},
        "current_step": "parse_model",
        "error": None,
    }

    try:
        print(f"\n📌 Target: {target}\n")
        result = compile_workflow().invoke(state)
    except CompileError as e:
        print(f"\n❌ Compilation failed: {e}")
        return 1

    print("\n" + "=" * 60)
    print("✅ Compilation complete!")
    print("=" * 60)
    print(f"\n📁 Output: {output_dir}")
    print(f"   - {len(result.get('artifacts', {}))} file(s)")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="BPMN to BPMS Compiler - compile annotated BPMN models for Camunda or Bonita"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    compile_parser = subparsers.add_parser("compile", help="Compile a model directory")
    compile_parser.add_argument(
        "--target",
        choices=["camunda", "bonita"],
        default=Config.TARGET,
        help="Target engine"
    )
    compile_parser.add_argument(
        "--model-dir",
        default=str(Config.MODELS_DIR),
        help="Directory holding the .bpmn file, config.json and descriptors"
    )
    compile_parser.add_argument(
        "--output",
        default=str(Config.OUTPUT_DIR),
        help="Output directory"
    )

    args = parser.parse_args()

    if args.command == "compile":
        sys.exit(run_compile(args.target, args.model_dir, args.output))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
