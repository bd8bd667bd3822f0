#!/usr/bin/env python3
"""
Demo Runner Script

Sends a batch of prompts through the Provider Relay dispatcher and reports
which provider served each one, followed by the final provider status.

This script:
1. Builds the dispatcher from settings (or from stub adapters with --dry-run)
2. Sends --count prompts concurrently
3. Reports per-call provider selection and errors
4. Prints the provider status table and dispatch metrics

Usage:
    python scripts/run_demo.py                          # 5 real completions
    python scripts/run_demo.py --count 20 --dry-run     # Stub adapters, no API calls
    python scripts/run_demo.py --dry-run --fail-auth groq  # Simulate a revoked key
    python scripts/run_demo.py --verbose                # Show completion text
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from app.config import Settings, configure_logging, get_settings
from app.dispatcher.adapters import BackendAdapter
from app.dispatcher.service import Dispatcher, build_dispatcher
from app.errors import DispatchError, ProviderError, ProviderErrorKind
from app.metrics.reporter import MetricsReporter
from app.status.reporter import StatusReporter


class StubAdapter(BackendAdapter):
    """Adapter that answers locally, optionally failing with an auth error."""

    def __init__(self, name: str, fail_auth: bool = False, delay_s: float = 0.05):
        self.name = name
        self.fail_auth = fail_auth
        self.delay_s = delay_s

    async def invoke(self, prompt, system_prompt, model, max_output_tokens):
        await asyncio.sleep(self.delay_s)
        if self.fail_auth:
            raise ProviderError(
                ProviderErrorKind.AUTH, "Invalid API key (simulated)", provider=self.name
            )
        return f"[{self.name}:{model}] {prompt[:40]}"


def build_demo_dispatcher(args: argparse.Namespace) -> Dispatcher:
    """Build a real or stubbed dispatcher based on CLI flags."""
    if not args.dry_run:
        settings = get_settings()
        configure_logging(settings)
        return build_dispatcher(settings)

    settings = Settings(openai_api_key="demo-key", groq_api_key="demo-key")
    configure_logging(settings)
    adapters = {
        config.name: StubAdapter(config.name, fail_auth=config.name in args.fail_auth)
        for config in settings.provider_configs()
    }
    return build_dispatcher(settings, adapters=adapters)


async def run_one(dispatcher: Dispatcher, index: int, prompt: str, verbose: bool) -> bool:
    """Send one prompt and print the outcome."""
    try:
        result = await dispatcher.complete(f"{prompt} (#{index})")
    except ProviderError as e:
        print(f"  #{index:<3} FAILED   {str(e.provider):<10} {e.kind.value}: {e.message}")
        return False
    except DispatchError as e:
        print(f"  #{index:<3} REJECTED {'-':<10} {e}")
        return False

    line = f"  #{index:<3} OK       {result.provider_name:<10}"
    if verbose:
        line += f" {result.content[:60]}"
    print(line)
    return True


def print_status(dispatcher: Dispatcher) -> None:
    """Print the provider status table."""
    print("\nProvider status:")
    print(f"  {'name':<10} {'state':<14} {'enabled':<8} {'count':>5} / {'cap':<5}")
    for status in StatusReporter(dispatcher.registry).snapshot():
        print(
            f"  {status.name:<10} {status.state.value:<14} "
            f"{str(status.enabled):<8} {status.request_count:>5} / "
            f"{status.requests_per_minute:<5}"
        )


def print_metrics(dispatcher: Dispatcher) -> None:
    """Print aggregated dispatch metrics."""
    report = MetricsReporter(dispatcher.metrics).generate_report()
    print("\nDispatch metrics:")
    print(f"  attempts: {report.total_requests}, rejected: {report.total_rejected}")
    print(f"  success rate: {report.success_rate_percent:.1f}%")
    for name, metrics in report.requests_by_provider.items():
        print(
            f"  {name:<10} ok={metrics.success_count} "
            f"auth={metrics.auth_failure_count} "
            f"transient={metrics.transient_failure_count} "
            f"avg={metrics.avg_latency_ms:.0f}ms"
        )


async def main_async(args: argparse.Namespace) -> int:
    dispatcher = build_demo_dispatcher(args)

    print(f"Sending {args.count} prompt(s)...")
    results = await asyncio.gather(
        *(run_one(dispatcher, i, args.prompt, args.verbose) for i in range(args.count))
    )

    print_status(dispatcher)
    print_metrics(dispatcher)

    return 0 if all(results) else 1


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Send prompts through the Provider Relay dispatcher",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--count", "-n", type=int, default=5, help="Number of prompts to send"
    )
    parser.add_argument(
        "--prompt",
        "-p",
        default="Say hello in one short sentence.",
        help="Prompt text",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Use local stub adapters instead of real provider APIs",
    )
    parser.add_argument(
        "--fail-auth",
        action="append",
        default=[],
        metavar="PROVIDER",
        help="With --dry-run, make this provider fail with an auth error",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show completion text"
    )

    args = parser.parse_args()
    return asyncio.run(main_async(args))


if __name__ == "__main__":
    sys.exit(main())
