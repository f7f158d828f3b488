import asyncio

from llm_switchboard import (
    ChatMessage,
    ContentDelta,
    Done,
    Provider,
    ProviderConfig,
    ToolCallStart,
    create_adapter,
    get_api_key,
)


async def chat_example():
    messages = [
        ChatMessage.system("You are a helpful assistant."),
        ChatMessage.user("What's your name?"),
    ]

    for provider in (Provider.OPENAI, Provider.ANTHROPIC, Provider.GEMINI):
        config = ProviderConfig(provider=provider, api_key=get_api_key(provider))
        async with create_adapter(config, default_params={"max_tokens": 200}) as adapter:
            response = await adapter.chat(messages, params={"temperature": 0.7})
            print(f"{provider}: ", response.content)
            print(f"{provider} usage: ", response.usage)


async def stream_example():
    config = ProviderConfig(provider=Provider.ANTHROPIC, api_key=get_api_key(Provider.ANTHROPIC))
    messages = [ChatMessage.user("Write a haiku about rivers.")]

    async with create_adapter(config) as adapter:
        async for chunk in adapter.chat_stream(messages):
            if isinstance(chunk, ContentDelta):
                print(chunk.text, end="", flush=True)
            elif isinstance(chunk, ToolCallStart):
                print(f"\n[tool call {chunk.name}]")
            elif isinstance(chunk, Done):
                print(f"\n[done: {chunk.finish_reason}]")


if __name__ == "__main__":
    asyncio.run(chat_example())
    asyncio.run(stream_example())
