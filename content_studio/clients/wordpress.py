import base64
import logging
import requests
from typing import List, Dict, Optional
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from ..models import ContentRecord, ImagePrompt, Link, ValidationReport
from ..utils.linking import rank_related_posts
from ..utils.markup import strip_tags

logger = logging.getLogger(__name__)

REPORT_META_KEY = "_acs_generation_report"


class WordPressClient:
    """WordPress REST API client.

    Acts as the site search, keyword history and publisher collaborator of
    the content generator.
    """

    def __init__(self, wp_url: Optional[str], wp_user: Optional[str], wp_app_password: Optional[str]):
        if not wp_url:
            self.wp_url = ""
            logger.warning("WordPress URL is missing.")
        else:
            self.wp_url = wp_url.rstrip('/')

        self.wp_user = wp_user
        self.wp_app_password = wp_app_password
        self.session = requests.Session()

        if wp_user and wp_app_password:
            auth = f"{wp_user}:{wp_app_password}"
            self.token = base64.b64encode(auth.encode()).decode('utf-8')
            self.headers = {
                "Authorization": f"Basic {self.token}"
            }
        else:
            self.headers = {}
            logger.warning("WordPress credentials missing.")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        reraise=True
    )
    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Send a request to the REST API, retrying dropped connections and timeouts."""
        kwargs.setdefault("timeout", 30)
        return self.session.request(method, f"{self.wp_url}/wp-json/wp/v2/{path}", headers=self.headers, **kwargs)

    def fetch_posts(self, params: Dict = None) -> List[Dict]:
        if not self.wp_url: return []
        params = params or {"per_page": 20}
        try:
            response = self._request("GET", "posts", params=params)
            if response.status_code == 200:
                return response.json()
            logger.warning(f"Fetching posts returned {response.status_code}")
        except Exception as e:
            logger.error(f"Error fetching posts: {e}")
        return []

    def get_post(self, post_id: int) -> Optional[Dict]:
        if not self.wp_url: return None
        try:
            response = self._request("GET", f"posts/{post_id}", params={"context": "edit"})
            if response.status_code == 200:
                return response.json()
            logger.error(f"Post {post_id} not found: {response.status_code}")
        except Exception as e:
            logger.error(f"Error fetching post {post_id}: {e}")
        return None

    def create_post(self, data: Dict) -> Optional[int]:
        if not self.wp_url: return None
        try:
            response = self._request("POST", "posts", json=data)
            if response.status_code == 201:
                return response.json().get('id')
            logger.error(f"Failed to create post: {response.status_code} - {response.text}")
        except Exception as e:
            logger.error(f"Error creating post: {e}")
        return None

    def update_post(self, post_id: int, data: Dict) -> bool:
        if not self.wp_url: return False
        try:
            response = self._request("POST", f"posts/{post_id}", json=data)
            return response.status_code == 200
        except Exception as e:
            logger.error(f"Error updating post {post_id}: {e}")
        return False

    # --- site search ---

    def _search(self, term: str, limit: int) -> List[Dict[str, str]]:
        posts = self.fetch_posts(params={"search": term, "per_page": limit, "status": "publish"})
        return [{"title": strip_tags(p['title']['rendered']), "url": p['link']} for p in posts]

    def find_related(self, topic: str, keywords: str = "", max_results: int = 5) -> List[Dict[str, str]]:
        """Published posts related to the topic, then to each keyword, unique by URL."""
        candidates = self._search(topic, max_results)
        for keyword in [k.strip() for k in (keywords or "").split(",") if k.strip()]:
            if len({c['url'] for c in candidates}) >= max_results:
                break
            candidates.extend(self._search(keyword, max_results))
        return rank_related_posts(topic, candidates, max_results)

    # --- keyword history ---

    def was_used_before(self, keyword: str) -> bool:
        """True when a published post title already contains the keyword."""
        if not keyword:
            return False
        for post in self._search(keyword, 20):
            if keyword.lower() in post['title'].lower():
                return True
        return False

    # --- publishing ---

    def create_draft(self, record: ContentRecord, report: Optional[ValidationReport] = None) -> Optional[int]:
        """Create a draft post with Yoast SEO fields and the validation report."""
        meta = {
            "_yoast_wpseo_metadesc": record.meta_description,
            "_yoast_wpseo_focuskw": record.focus_keyword,
            "_yoast_wpseo_title": record.title,
        }
        if report is not None:
            meta[REPORT_META_KEY] = report.model_dump_json()

        post_id = self.create_post({
            "title": record.title,
            "content": record.content,
            "slug": record.slug,
            "excerpt": record.excerpt,
            "status": "draft",
            "meta": meta,
        })
        if post_id:
            logger.info(f"📝 Draft created (ID: {post_id}) from provider '{record.provider}'")
        return post_id

    def record_from_post(self, post: Dict) -> ContentRecord:
        """Rebuild a ContentRecord from a stored post and its generation report."""
        meta = post.get('meta') or {}

        def rendered(field: str) -> str:
            value = post.get(field) or {}
            if isinstance(value, dict):
                return value.get('raw') or value.get('rendered') or ''
            return str(value)

        excerpt = strip_tags(rendered('excerpt'))
        report = {}
        raw_report = meta.get(REPORT_META_KEY)
        if raw_report:
            try:
                report = ValidationReport.model_validate_json(raw_report).model_dump()
            except ValueError as e:
                logger.warning(f"Ignoring unreadable generation report on post {post.get('id')}: {e}")

        return ContentRecord(
            title=strip_tags(rendered('title')),
            content=rendered('content'),
            meta_description=meta.get('_yoast_wpseo_metadesc') or excerpt,
            focus_keyword=meta.get('_yoast_wpseo_focuskw') or '',
            slug=post.get('slug', ''),
            excerpt=excerpt,
            image_prompts=[ImagePrompt(**p) for p in meta.get('_acs_image_prompts') or []],
            internal_links=[Link(**l) for l in meta.get('_acs_internal_links') or []],
            provider=report.get('provider', ''),
        )

    def save_record(self, post_id: int, record: ContentRecord, report: Optional[ValidationReport] = None) -> bool:
        meta = {
            "_yoast_wpseo_metadesc": record.meta_description,
            "_yoast_wpseo_focuskw": record.focus_keyword,
            "_yoast_wpseo_title": record.title,
            "_acs_image_prompts": [p.model_dump() for p in record.image_prompts],
            "_acs_internal_links": [l.model_dump() for l in record.internal_links],
        }
        if report is not None:
            meta[REPORT_META_KEY] = report.model_dump_json()
        return self.update_post(post_id, {
            "title": record.title,
            "content": record.content,
            "excerpt": record.excerpt,
            "meta": meta,
        })
