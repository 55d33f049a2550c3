"""Example usage of the AI feature circuit breaker."""

import asyncio
import random
from ai_feature_breaker import CircuitBreakerRegistry, CircuitBreakerOpen, registry_scope, use_circuit_breaker
from ai_feature_breaker.storage import JSONFileStorage


async def analyze_competitors(opportunity_id: str) -> dict:
    """Stand-in for a call to the AI gateway that fails now and then."""
    await asyncio.sleep(0.1)
    if random.random() < 0.6:
        raise RuntimeError("AI gateway returned 429")
    return {"opportunity_id": opportunity_id, "competitors": ["Acme EMS", "Metro Ambulance"]}


async def main():
    """Example: Guard an AI feature and show the disabled notice."""

    registry = CircuitBreakerRegistry(storage=JSONFileStorage(".breaker/state.json"))

    async with registry:
        with registry_scope(registry):
            guard = use_circuit_breaker("Competitor Intelligence")

            for attempt in range(6):
                try:
                    result = await guard.call(analyze_competitors, "opp-2024-117")
                    print(f"Attempt {attempt + 1}: {result}")
                except CircuitBreakerOpen:
                    notice = guard.notice()
                    print(f"Attempt {attempt + 1}: {notice.title} - {notice.retry_in}")
                except RuntimeError as e:
                    print(f"Attempt {attempt + 1}: failed ({e}), failures={guard.status.failures}")


if __name__ == "__main__":
    asyncio.run(main())
