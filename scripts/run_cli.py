"""Interactive CLI for the assistant.

Usage:
    python scripts/run_cli.py [--project PATH] [--provider NAME] [--model NAME]
"""

import argparse
import os
import sys

# Ensure the project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from agent import config  # noqa: E402
from agent.assistant import Assistant  # noqa: E402
from agent.gateway import create_gateway  # noqa: E402
from agent.runtime import create_runtime  # noqa: E402


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Approval-gated coding assistant")
    parser.add_argument("--project", default=config.PROJECT_ROOT, help="project root to work in")
    parser.add_argument(
        "--provider",
        default=config.LLM_PROVIDER,
        help="openai, gemini, anthropic, kimi, groq, ollama or fallback",
    )
    parser.add_argument("--model", default=config.MODEL_NAME, help="model name for the provider")
    return parser.parse_args(argv)


def input_prompt(assistant) -> str:
    """Prompt that tells the user which reply the assistant is waiting for."""
    if assistant.awaiting_approval:
        return "\033[1;33mApprove? (yes/no)\033[0m "
    if assistant.awaiting_patch:
        return "\033[1;33mPatch? (apply patch/discard patch)\033[0m "
    return "\033[1;36mYou:\033[0m "


def main(argv=None):
    """Run an interactive chat loop in the terminal."""
    args = parse_args(argv)
    runtime = create_runtime(
        project_root=args.project,
        gateway=create_gateway(args.provider, args.model),
    )
    assistant = Assistant(runtime, session_id="cli-session")

    print("=" * 60)
    print("  ⚡ Approval-Gated Assistant — CLI Mode")
    print(f"  Project: {runtime.project_root}")
    print("  Type /help for commands, 'quit' or 'exit' to stop.")
    print("=" * 60)
    print()

    while True:
        prompt = input_prompt(assistant)
        try:
            user_input = input(prompt).strip()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break

        if not user_input:
            continue
        if user_input.lower() in ("quit", "exit"):
            print("Goodbye!")
            break

        print()
        reply = assistant.handle_message(user_input)
        if reply.startswith("Error:"):
            print(f"\033[1;31mError:\033[0m {reply[len('Error:'):].strip()}")
        else:
            print(f"\033[1;35mAgent:\033[0m {reply}")
        print()


if __name__ == "__main__":
    main()
