#!/usr/bin/env python3
"""
Quick demo of the build failure workflow with stand-in agent capabilities.

Usage:
    python -m automation.workflows.examples.demo
"""

import asyncio
import json

from automation import CapabilityRegistry, WorkflowRuntime
from automation.runtime_data import Execution
from automation.workflows.loader import BUILTIN_DEFINITIONS_DIR, load_workflows


def build_demo_capabilities(auto_execute: bool = True) -> CapabilityRegistry:
    """Capabilities that echo plausible results instead of calling services."""
    capabilities = CapabilityRegistry()

    capabilities.register_agent(
        "monitor",
        {
            "monitorBuildFailure": lambda data: {
                "summary": f"compile error in {data['build']['definition']}",
                "severity": "high",
            },
        },
    )

    async def send_notification(data):
        await asyncio.sleep(0)
        return {"status": "sent", "recipient": data["recipient"]}

    capabilities.register_agent(
        "execute",
        {
            "decide": lambda data: {
                "decision": "auto_execute" if auto_execute else "manual_review"
            },
            "executeAction": lambda data: {"action": "retry_build", "queued": True},
            "sendNotification": send_notification,
        },
    )
    return capabilities


async def run_demo(auto_execute: bool = True) -> Execution:
    runtime = WorkflowRuntime.from_settings(
        capabilities=build_demo_capabilities(auto_execute)
    )
    load_workflows(runtime.workflows, BUILTIN_DEFINITIONS_DIR)

    return await runtime.engine.execute(
        "build-failure-resolution",
        {"build": {"buildNumber": "20240101.3", "definition": "backend-ci"}},
    )


async def main():
    print("\n" + "=" * 80)
    print("BUILD FAILURE WORKFLOW DEMO")
    print("=" * 80 + "\n")

    execution = await run_demo()

    for result in execution.step_results:
        print(f"  {result.step_id:<16} {result.status.value}")
    print(f"\nStatus: {execution.status.value}\n")
    print(json.dumps(execution.outputs, indent=2))


if __name__ == "__main__":
    asyncio.run(main())
