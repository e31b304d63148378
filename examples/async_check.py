"""Asyncio usage example for the pepkit SDK."""

import asyncio

from pepkit import AsyncAZClient, AZAtomicRequestBuilder, AZConfig, PrincipalBuilder


async def main():
    principal = (
        PrincipalBuilder("spiffe://edge.example.com/workload/64ad91fec7b0403eaf5d37e56c14ba42")
        .with_type("workload")
        .with_source("spire")
        .build()
    )
    base = AZAtomicRequestBuilder(
        634601921829,
        "417b278c0d024cf789e3d3c2bc9854c6",
        "role/branch-owner",
        "PharmaAuthZFlow::Platform::Branch",
        "PharmaAuthZFlow::Platform::Action::assign-role",
    ).with_principal(principal)

    # Builders are immutable, so one base can be specialised per branch
    requests = [
        base.with_request_id(f"branch-{branch_id}").with_resource_id(branch_id).build()
        for branch_id in ("fb008a600df04b21841c4fb5ad27ddf7", "0c1bd3a6b7e34d4b9c0f8e2a1d5f6c7e")
    ]

    async with AsyncAZClient(AZConfig.from_env()) as client:
        responses = await asyncio.gather(*(client.check(request) for request in requests))

    for request, response in zip(requests, responses):
        verdict = "permitted" if response.decision else "denied"
        print(f"{request.request_id}: {verdict}")
        for scope, reason in response.reasons():
            print(f"  {scope}: {reason.message}")


if __name__ == "__main__":
    asyncio.run(main())
