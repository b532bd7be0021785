from . import credits, generation_realtime, generation_stream, jumps, tool_prompts

__all__ = ["credits", "generation_realtime", "generation_stream", "jumps", "tool_prompts"]
