"""
Entry Point — Grounded search from the terminal.

Pipeline:
  1. Draw the next Gemini API key (round-robin)
  2. Ask Gemini with Google Search grounding
  3. Print the answer and its deduplicated web sources
  4. Later questions continue the same conversation (follow-ups)

Usage:
  python3 ask.py                    # Interactive mode
  python3 ask.py "your question"    # Single question

Interactive commands:
  /new   start a new conversation
  /keys  show key pool status
  q      quit
"""
import sys
import time

from core.config import settings
from core.errors import SearchError
from core.search_controller import FollowUpResult, SearchController, build_controller


def _print_result(result: FollowUpResult, elapsed: float) -> None:
    print(f"\n{'─' * 60}")
    print(result.raw_text.strip())
    print(f"{'─' * 60}")

    if result.sources:
        print("   📚 Sources:")
        for i, source in enumerate(result.sources, 1):
            print(f"   [{i}] {source.title} — {source.url}")
            if source.snippet:
                print(f"       {source.snippet[:120].replace(chr(10), ' ')}")
    else:
        print("   📚 No web sources cited")
    print(f"   ⏱️  {elapsed:.2f}s")


def ask(query: str, controller: SearchController, session_id: str | None = None) -> str | None:
    """
    Run one turn: a new search, or a follow-up when session_id is given.

    Returns:
        The session id to continue with (None when the turn failed on a
        new conversation).
    """
    print(f"\n{'═' * 60}")
    print(f"❓ {query}")
    print(f"{'═' * 60}")

    t0 = time.time()
    try:
        if session_id:
            result = controller.follow_up(session_id, query)
        else:
            result = controller.new_search(query)
            session_id = result.session_id
    except SearchError as e:
        print(f"   ❌ {e.message}")
        return session_id

    _print_result(result, time.time() - t0)
    return session_id


def main():
    """Main entry point with interactive and single-question modes."""
    args = [a for a in sys.argv[1:] if not a.startswith("--")]

    try:
        controller = build_controller()
    except SearchError as e:
        print(f"❌ {e.message} — set GOOGLE_API_KEYS in .env")
        sys.exit(1)

    print("=" * 60)
    print("🤖 Grounded Search")
    print(f"   🧠 LLM:  {settings.GEMINI_MODEL} + Google Search")
    print(f"   🔑 Keys: {controller.key_manager.key_count()}")
    print("=" * 60)

    if args:
        # Single question mode
        ask(" ".join(args), controller)
        return

    # Interactive mode
    print("\n💬 Interactive mode — type your question ('/new' new topic, 'q' to quit)\n")
    session_id = None
    while True:
        try:
            query = input("❓ Question: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n👋 Bye")
            break

        if not query:
            continue
        if query.lower() in ("q", "quit", "exit"):
            print("👋 Bye")
            break
        if query == "/new":
            session_id = None
            print("   🆕 New conversation")
            continue
        if query == "/keys":
            status = controller.key_status()
            source = "custom" if status["isUsingCustomKeys"] else "default"
            print(f"   🔑 {status['keyCount']} {source} key(s)")
            continue

        session_id = ask(query, controller, session_id)
        print()


if __name__ == "__main__":
    main()
