import asyncio

from objective_query.client import QueryModel
from objective_query.parsing import build_output_parser
from objective_query.providers.objectiveai import ObjectiveAIProvider
from objective_query.request import build_request_config
from objective_query.settings import Credentials
from objective_query.types import Message


async def main() -> None:
    config = build_request_config(
        "DUMMY",
        {
            "n": 1,
            "response_format": {
                "kind": "json_schema",
                "name": "Answer",
                "description": "",
                "schema": '{"type": "object", "properties": {"response": {"type": "string"}},'
                ' "required": ["response"], "additionalProperties": false}',
            },
        },
    )

    async with ObjectiveAIProvider(Credentials(api_key="DUMMY")) as provider:
        model = QueryModel(config, provider)

        # Parsing works without network access
        parser = build_output_parser(model)
        print(await parser.parse('{"response": "hello"}'))
        print(await parser.parse_result("no json here"))

        try:
            await model.invoke([Message(role="user", content="hi")])
        except Exception as e:
            print("Expected error:", type(e).__name__, e)


if __name__ == "__main__":
    asyncio.run(main())
