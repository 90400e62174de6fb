"""
Generation orchestrator.

Drives one GenerationRequest through the pipeline:
prompt -> provider call -> parse (with repair) -> sanitize -> auto-fix -> validate,
with a single corrective retry per provider and failover to the next one.
"""

import logging
from typing import Dict, List, Optional, Tuple, Union

from .audit import GenerationLog
from .autofix import AutoFixEngine
from .clients.base import ProviderClient, ProviderError
from .clients.factory import build_provider_clients
from .config import Settings
from .history import keyword_used_before
from .models import (
    CleanSuccess, ContentRecord, Exhausted, GenerationError, GenerationRequest,
    GenerationResult, ParseError, RetriedSuccess, ValidationReport,
)
from .parser import parse_response
from .prompts import MAX_LINK_CANDIDATES, ContentPromptBuilder
from .sanitizer import sanitize_record
from .validator import SEOValidator

logger = logging.getLogger(__name__)

AttemptOutcome = Union[CleanSuccess, RetriedSuccess, Exhausted]

RETRY_FAILED = "retry_failed"


class ContentGenerator:
    """Generates SEO-compliant articles with retry and provider failover.

    Collaborators are injected; any of them may be omitted:
        site_search: object with ``find_related(topic, keywords, max_results)``
        keyword_history: object with ``was_used_before(keyword)``
        audit_log: object with ``record_attempt(post_id, report, context)``
    """

    def __init__(self, settings: Optional[Settings] = None,
                 clients: Optional[Dict[str, ProviderClient]] = None,
                 site_search=None, keyword_history=None,
                 audit_log: Optional[GenerationLog] = None,
                 prompt_builder: Optional[ContentPromptBuilder] = None,
                 validator: Optional[SEOValidator] = None,
                 autofix: Optional[AutoFixEngine] = None):
        self.settings = settings or Settings()
        rules = self.settings.rules
        if clients is None:
            clients = build_provider_clients(self.settings)
        self.clients = clients
        self.site_search = site_search
        self.keyword_history = keyword_history
        self.audit_log = audit_log
        self.prompt_builder = prompt_builder or ContentPromptBuilder(rules)
        self.validator = validator or SEOValidator(rules)
        self.autofix = autofix or AutoFixEngine(rules)

    # --- collaborators ---

    def _provider_sequence(self, request: GenerationRequest) -> List[ProviderClient]:
        if request.providers:
            names = []
            for name in request.providers:
                name = (name or '').strip().lower()
                if name in self.clients and name not in names:
                    names.append(name)
                elif name not in self.clients:
                    logger.warning(f"Requested provider '{name}' is not available")
        else:
            names = list(self.clients)

        sequence = []
        for name in names:
            client = self.clients[name]
            if client.is_configured():
                sequence.append(client)
            else:
                logger.info(f"Provider '{name}' skipped (not configured)")
        return sequence

    def _link_candidates(self, request: GenerationRequest) -> List[Dict[str, str]]:
        if self.site_search is None:
            return []
        try:
            return list(self.site_search.find_related(request.topic, ", ".join(request.keywords), MAX_LINK_CANDIDATES) or [])
        except Exception as e:
            logger.warning(f"Site search failed, continuing without link candidates: {e}")
            return []

    def _record_attempt(self, post_id: Optional[int], report: ValidationReport, context: Dict):
        if self.audit_log is None:
            return
        try:
            self.audit_log.record_attempt(post_id, report, context)
        except Exception as e:
            logger.warning(f"Audit log failed: {e}")

    def _call_options(self) -> Dict:
        return {"max_tokens": self.settings.max_tokens, "temperature": self.settings.temperature}

    # --- pipeline ---

    def _process(self, raw: str, provider: str, keyword: str, used_before: bool) -> Tuple[ContentRecord, bool, List[str]]:
        """Parse, sanitize, auto-fix and validate one response.

        Returns:
            (record, auto_fix_applied, violations)

        Raises:
            ParseError: when no record can be recovered from ``raw``
        """
        record = parse_response(raw, provider)
        if not record.focus_keyword.strip() and keyword:
            record = record.model_copy(update={"focus_keyword": keyword})
        record = sanitize_record(record, self.validator.rules)

        fixed = self.autofix.apply(record, used_before)
        if fixed is not None:
            record = fixed
        errors = self.validator.validate(record, used_before)
        return record, fixed is not None, errors

    def _attempt(self, client: ProviderClient, prompt: str, keyword: str, used_before: bool) -> AttemptOutcome:
        """Run one provider: initial call plus at most one corrective retry."""
        name = client.name
        options = self._call_options()

        try:
            raw = client.call(prompt, options)
            record, fixed, errors = self._process(raw, name, keyword, used_before)
        except ProviderError as e:
            logger.warning(f"⚠️ Provider '{name}' failed ({'retryable' if e.retryable else 'permanent'}): {e}")
            return Exhausted(reason="provider_error", initial_errors=[str(e)])
        except ParseError as e:
            logger.warning(f"⚠️ Could not parse response from '{name}': {e.reason}")
            return Exhausted(reason=e.reason, initial_errors=[str(e)])
        except Exception as e:
            logger.error(f"❌ Unexpected error from provider '{name}': {e}")
            return Exhausted(reason="provider_error", initial_errors=[str(e)])

        if not errors:
            logger.info(f"✅ '{name}' produced a compliant article")
            return CleanSuccess(record=record, auto_fix_applied=fixed)

        logger.info(f"🔁 '{name}' left {len(errors)} violation(s); sending corrective prompt")
        retry_prompt = self.prompt_builder.build_retry_prompt(prompt, errors)
        try:
            raw = client.call(retry_prompt, options)
            retry_record, retry_fixed, retry_errors = self._process(raw, name, keyword, used_before)
        except (ProviderError, ParseError) as e:
            logger.warning(f"⚠️ Corrective retry on '{name}' failed: {e}")
            return Exhausted(reason=RETRY_FAILED, record=record, initial_errors=errors,
                             retry_errors=[RETRY_FAILED], auto_fix_applied=fixed, retried=True)
        except Exception as e:
            logger.error(f"❌ Unexpected error during retry on '{name}': {e}")
            return Exhausted(reason=RETRY_FAILED, record=record, initial_errors=errors,
                             retry_errors=[RETRY_FAILED], auto_fix_applied=fixed, retried=True)

        if not retry_errors:
            logger.info(f"✅ '{name}' is compliant after retry")
            return RetriedSuccess(record=retry_record, initial_errors=errors, auto_fix_applied=fixed or retry_fixed)

        logger.warning(f"⚠️ '{name}' still has {len(retry_errors)} violation(s) after retry")
        return Exhausted(reason="validation_failed", record=retry_record, initial_errors=errors,
                         retry_errors=retry_errors, auto_fix_applied=fixed or retry_fixed, retried=True)

    @staticmethod
    def _report(provider: str, outcome: AttemptOutcome) -> Tuple[ValidationReport, str]:
        """Build the validation report and the attempt tag for one outcome."""
        if isinstance(outcome, CleanSuccess):
            return ValidationReport(provider=provider, auto_fix_applied=outcome.auto_fix_applied), "clean"
        if isinstance(outcome, RetriedSuccess):
            return ValidationReport(
                provider=provider,
                initial_errors=outcome.initial_errors,
                auto_fix_applied=outcome.auto_fix_applied,
                retry=True,
            ), "retried"
        return ValidationReport(
            provider=provider,
            initial_errors=outcome.initial_errors,
            auto_fix_applied=outcome.auto_fix_applied,
            retry=outcome.retried,
            retry_errors=outcome.retry_errors,
        ), outcome.reason

    def generate(self, request: GenerationRequest) -> GenerationResult:
        """Generate one article.

        Returns the first compliant record, or the last best-effort record
        with ``compliant=False`` when every provider left violations.

        Raises:
            GenerationError: ``no_provider_configured`` when no provider can be
                called, ``no_providers_succeeded`` when none produced a
                parseable record
        """
        clients = self._provider_sequence(request)
        if not clients:
            logger.error("No LLM provider is configured or enabled.")
            raise GenerationError(GenerationError.NO_PROVIDER_CONFIGURED)

        logger.info(f"🚀 Generating article for '{request.topic}' via {', '.join(c.name for c in clients)}")
        keyword = self.prompt_builder.resolve_focus_keyword(request)
        used_before = keyword_used_before(self.keyword_history, keyword)
        candidates = self._link_candidates(request)
        prompt = self.prompt_builder.build_prompt(request, candidates, used_before)

        attempts = []
        fallback = None
        for client in clients:
            outcome = self._attempt(client, prompt, keyword, used_before)
            report, tag = self._report(client.name, outcome)
            attempts.append(f"{client.name}:{tag}")

            compliant = isinstance(outcome, (CleanSuccess, RetriedSuccess))
            level = "info" if compliant else ("warning" if outcome.record is not None else "error")
            self._record_attempt(0, report, {
                "topic": request.topic,
                "focus_keyword": keyword,
                "provider": client.name,
                "outcome": tag,
                "level": level,
            })

            if compliant:
                return GenerationResult(record=outcome.record, report=report, compliant=True, attempts=attempts)
            if outcome.record is not None:
                fallback = (outcome.record, report)
            logger.info(f"➡️ Moving on from provider '{client.name}' ({tag})")

        if fallback is not None:
            record, report = fallback
            logger.warning(f"⚠️ All providers exhausted; returning best-effort article from '{report.provider}'")
            return GenerationResult(record=record, report=report, compliant=False, attempts=attempts)

        logger.error(f"❌ No provider produced a usable article ({', '.join(attempts)})")
        raise GenerationError(GenerationError.NO_PROVIDERS_SUCCEEDED, attempts)

    def generate_and_publish(self, request: GenerationRequest, publisher,
                             allow_non_compliant: bool = True) -> Tuple[GenerationResult, Optional[int]]:
        """Generate an article and hand it to ``publisher.create_draft``.

        Non-compliant best-effort articles are published only when
        ``allow_non_compliant`` is set.
        """
        result = self.generate(request)
        if not result.compliant and not allow_non_compliant:
            logger.warning("Article is not compliant; skipping publication")
            return result, None

        try:
            post_id = publisher.create_draft(result.record, result.report)
        except Exception as e:
            logger.error(f"❌ Publishing failed: {e}")
            post_id = None

        if post_id:
            self._record_attempt(post_id, result.report, {
                "topic": request.topic,
                "provider": result.report.provider,
                "outcome": "published",
                "level": "info" if result.compliant else "warning",
            })
        return result, post_id

    # --- existing content ---

    def validate_existing(self, record: ContentRecord, history=None) -> List[str]:
        """Re-check an already published record; an empty list means it passes."""
        history = history if history is not None else self.keyword_history
        used_before = keyword_used_before(history, record.focus_keyword)
        return self.validator.validate(record, used_before)

    def autofix_existing(self, record: ContentRecord, history=None) -> ContentRecord:
        """Apply deterministic fixes to an existing record. Returns the record unchanged when nothing fired."""
        history = history if history is not None else self.keyword_history
        used_before = keyword_used_before(history, record.focus_keyword)
        fixed = self.autofix.apply(record, used_before)
        return fixed if fixed is not None else record

    def regenerate_post(self, post_id: int, store) -> Optional[GenerationResult]:
        """Generate a fresh article for a stored post and save it over the old one.

        The topic is the post title (or its excerpt) and the stored focus
        keyword seeds the request. Returns None when the post is missing or
        the update fails; GenerationError propagates to the caller.
        """
        post = store.get_post(post_id)
        if not post:
            logger.error(f"Post {post_id} not found")
            return None

        existing = store.record_from_post(post)
        topic = existing.title.strip() or existing.excerpt.strip()
        if not topic:
            logger.error(f"Post {post_id} has neither a title nor an excerpt to regenerate from")
            return None

        keywords = [existing.focus_keyword] if existing.focus_keyword.strip() else []
        result = self.generate(GenerationRequest(topic=topic, keywords=keywords))
        if not store.save_record(post_id, result.record, result.report):
            logger.error(f"❌ Failed to save regenerated content for post {post_id}")
            return None

        self._record_attempt(post_id, result.report, {
            "topic": topic,
            "focus_keyword": result.record.focus_keyword,
            "provider": result.report.provider,
            "outcome": "regenerated",
            "level": "info" if result.compliant else "warning",
        })
        logger.info(f"🔄 Post {post_id} regenerated by '{result.report.provider}'")
        return result
