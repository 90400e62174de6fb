"""
Content Studio - LLM article generation with SEO validation and auto-fix.
Key Features: Multi-provider failover, JSON repair, SEO/readability rules, WordPress drafts.
"""

import json
import logging
import sys
from typing import Dict, Optional

from dotenv import load_dotenv

from content_studio.audit import GenerationLog
from content_studio.clients.factory import build_provider_clients
from content_studio.clients.wordpress import WordPressClient
from content_studio.config import Settings
from content_studio.history import InMemoryKeywordHistory
from content_studio.models import GenerationError, GenerationRequest
from content_studio.orchestrator import ContentGenerator

# Set up logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Load env
load_dotenv(override=True)


# --- INITIALIZATION ---
def initialize_system() -> Dict:
    """Initialize clients and the generator from the environment."""
    settings = Settings.from_env()
    clients = build_provider_clients(settings)
    if not clients:
        logger.error("No LLM provider configured. Set an API key such as GROQ_API_KEY.")
        return {}

    wp = None
    if settings.wp_url and settings.wp_user and settings.wp_app_password:
        wp = WordPressClient(settings.wp_url, settings.wp_user, settings.wp_app_password)
    else:
        logger.info("WordPress credentials not set; articles will be printed instead of published")

    audit_log = GenerationLog(settings.log_dir, settings.log_enabled, settings.log_max_bytes)
    generator = ContentGenerator(
        settings,
        clients=clients,
        site_search=wp,
        keyword_history=wp if wp else InMemoryKeywordHistory(),
        audit_log=audit_log,
    )

    return {
        "settings": settings,
        "wp": wp,
        "log": audit_log,
        "generator": generator,
    }


# --- PROCESSES ---

def run_generation(components: Dict, topic: str, keywords: str = "", word_count: str = "medium") -> bool:
    """Generate an article and publish it as a draft when WordPress is configured."""
    logger.info(f"🚀 Starting generation for '{topic}'...")
    generator = components["generator"]
    wp = components["wp"]
    request = GenerationRequest(topic=topic, keywords=keywords, word_count=word_count)

    try:
        if wp:
            result, post_id = generator.generate_and_publish(request, wp)
        else:
            result, post_id = generator.generate(request), None
    except GenerationError as e:
        logger.error(f"❌ Generation failed: {e.reason} ({', '.join(e.attempts) or 'no attempts'})")
        return False

    report = result.report
    logger.info(f"🔑 Focus Keyword: {result.record.focus_keyword}")
    if result.compliant:
        logger.info(f"✅ Compliant article from '{report.provider}' (retry: {report.retry})")
    else:
        logger.warning(f"⚠️ Best-effort article from '{report.provider}' with {len(report.retry_errors or report.initial_errors)} open issue(s):")
        for issue in report.retry_errors or report.initial_errors:
            logger.warning(f"   - {issue}")

    if not wp:
        print(result.model_dump_json(indent=2))
        return True
    if post_id:
        logger.info(f"🚀 Draft Post ID: {post_id}")
        return True
    logger.error("Failed to create draft in WordPress.")
    return False


def validate_post(components: Dict, post_id: int) -> bool:
    """Re-validate a stored post. Returns True when it passes every rule."""
    wp = components["wp"]
    if not wp:
        logger.error("WordPress credentials are required to validate a post.")
        return False
    post = wp.get_post(post_id)
    if not post:
        return False

    record = wp.record_from_post(post)
    errors = components["generator"].validate_existing(record)
    if not errors:
        logger.info(f"✅ Post {post_id} passes all SEO checks")
        return True
    logger.warning(f"⚠️ Post {post_id} has {len(errors)} issue(s):")
    for issue in errors:
        logger.warning(f"   - {issue}")
    return False


def autofix_post(components: Dict, post_id: int) -> bool:
    """Apply deterministic fixes to a stored post and save it back."""
    wp = components["wp"]
    if not wp:
        logger.error("WordPress credentials are required to fix a post.")
        return False
    post = wp.get_post(post_id)
    if not post:
        return False

    generator = components["generator"]
    record = wp.record_from_post(post)
    fixed = generator.autofix_existing(record)
    if fixed == record:
        logger.info(f"Post {post_id} needed no fixes")
        return True
    if not wp.save_record(post_id, fixed):
        logger.error(f"❌ Failed to save fixes for post {post_id}")
        return False

    remaining = generator.validate_existing(fixed)
    logger.info(f"🛠️ Post {post_id} updated ({len(remaining)} issue(s) remaining)")
    return True


def retry_post(components: Dict, post_id: int) -> bool:
    """Regenerate a stored post from its title and focus keyword."""
    wp = components["wp"]
    if not wp:
        logger.error("WordPress credentials are required to regenerate a post.")
        return False
    try:
        result = components["generator"].regenerate_post(post_id, wp)
    except GenerationError as e:
        logger.error(f"❌ Regeneration failed: {e.reason} ({', '.join(e.attempts) or 'no attempts'})")
        return False
    if result is None:
        return False
    if not result.compliant:
        logger.warning(f"⚠️ Post {post_id} saved with {len(result.report.retry_errors or result.report.initial_errors)} open issue(s)")
    return True


def show_logs(components: Dict, provider: Optional[str] = None):
    """Print recent generation attempts."""
    entries = components["log"].export(provider=provider)
    if not entries:
        print("No generation attempts recorded.")
        return
    for entry in entries:
        report = entry.get("report") or {}
        context = entry.get("context") or {}
        print(f"{entry.get('time')}  [{entry.get('level')}]  post={entry.get('post_id')}  "
              f"provider={report.get('provider', '-')}  outcome={context.get('outcome', '-')}  "
              f"topic={json.dumps(context.get('topic', ''))}")


def show_help():
    """Display usage information."""
    help_text = """
Content Studio - Usage Guide

Commands:
  python main.py generate "topic" [keywords] [length]   Generate an article
  python main.py validate <post_id>                     Re-check a stored post
  python main.py autofix <post_id>                      Apply SEO fixes to a stored post
  python main.py retry <post_id>                        Regenerate a stored post
  python main.py logs [provider]                        Show recent generation attempts
  python main.py help                                   Show this help message

Length: short | medium | long | detailed, a word count, or a range like 800-1200.

Environment Variables (at least one provider):
  GROQ_API_KEY, OPENAI_API_KEY, ANTHROPIC_API_KEY, OPENROUTER_API_KEY, GEMINI_API_KEY
  MOCK_PROVIDER_ENABLED   Enable the offline mock provider (default: false)

Environment Variables (Optional):
  DEFAULT_PROVIDER        Primary provider (default: groq)
  BACKUP_PROVIDERS        Comma-separated failover providers
  <PROVIDER>_MODEL        Model override per provider
  <PROVIDER>_ENABLED      Disable a provider without removing its key
  MAX_TOKENS, TEMPERATURE, PROVIDER_TIMEOUT
  KEYWORD_SYNONYMS        Comma-separated synonyms used by the density fix
  FALLBACK_OUTBOUND_URL   Outbound link inserted when an article has none
  SITE_URL                Base URL for fallback internal links
  WP_URL, WP_USER, WP_APP_PASSWORD   Publish drafts to WordPress
  GENERATION_LOG_DIR, GENERATION_LOG_ENABLED, GENERATION_LOG_MAX_BYTES

Examples:
  python main.py generate "Coffee brewing at home" "coffee brewing, pour over" long
  python main.py validate 123
  python main.py autofix 123
  python main.py retry 123
"""
    print(help_text)


def main(argv=None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    command = argv[0].lower() if argv else "help"

    if command in ["help", "-h", "--help"]:
        show_help()
        return 0

    system = initialize_system()
    if not system:
        logger.error("System initialization failed. Please check your environment variables.")
        return 1

    if command == "generate":
        if len(argv) < 2:
            show_help()
            return 1
        keywords = argv[2] if len(argv) > 2 else ""
        word_count = argv[3] if len(argv) > 3 else "medium"
        return 0 if run_generation(system, argv[1], keywords, word_count) else 1
    if command in ["validate", "autofix", "retry"]:
        if len(argv) < 2 or not argv[1].isdigit():
            logger.error(f"Usage: python main.py {command} <post_id>")
            return 1
        action = {"validate": validate_post, "autofix": autofix_post, "retry": retry_post}[command]
        return 0 if action(system, int(argv[1])) else 1
    if command == "logs":
        show_logs(system, argv[1] if len(argv) > 1 else None)
        return 0

    logger.error(f"Unknown command: {command}")
    show_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
