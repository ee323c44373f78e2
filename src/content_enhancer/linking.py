"""
Internal linking engine.

This module recommends cross-references between a piece of content and a
corpus of known pages:
- Link opportunities: lexical keyword matches scored by sentence context
- Injection: anchor tags inserted at the recommended positions
- Topic clusters: pillar pages grouped with pages sharing title keywords
- Linking strategy: hub recommendations and prioritized missing links
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from .config import LinkingConfig
from .models import (
    LinkOpportunity,
    LinkingStrategy,
    SitemapPage,
    SuggestedLink,
    TopicCluster,
)

SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")
ANCHOR_OPEN = "<a "
# Spans a new anchor must not land in: whole anchor elements, then any tag
ANCHOR_ELEMENT_PATTERN = re.compile(r"<a\b[^>]*>.*?</a\s*>", re.IGNORECASE | re.DOTALL)
TAG_PATTERN = re.compile(r"<[^>]+>")

SOURCE_MARKER = "current"

PILLAR_TO_MEMBER_PRIORITY = 95
MEMBER_TO_PILLAR_PRIORITY = 90
MEMBER_TO_MEMBER_PRIORITY = 60


@dataclass
class Sentence:
    """A sentence with its character span in the source text."""
    text: str
    start: int
    end: int


class InternalLinkingEngine:
    """
    Recommend and place internal links.

    All operations are pure with respect to their inputs; the only state is
    the configuration.
    """

    def __init__(self, config: Optional[LinkingConfig] = None):
        self.config = config or LinkingConfig()

    # ------------------------------------------------------------------
    # Opportunity discovery
    # ------------------------------------------------------------------

    def generate_link_opportunities(
        self,
        target_content: str,
        existing_pages: Sequence[SitemapPage],
        max_links: int = 15,
    ) -> list[LinkOpportunity]:
        """
        Find places in the content where corpus pages can be linked.

        Candidates are sorted by relevance, truncated to ``max_links`` and then
        thinned so that kept candidates are spread across the document.

        Args:
            target_content: Text (usually HTML) to scan.
            existing_pages: Corpus pages that can be linked to.
            max_links: Maximum candidates considered before spacing.

        Returns:
            List of LinkOpportunity, highest relevance first.
        """
        if not isinstance(target_content, str) or not target_content or not existing_pages:
            return []

        opportunities: list[LinkOpportunity] = []
        content_lower = target_content.lower()
        sentences = extract_sentences(target_content)

        for page in existing_pages:
            title = getattr(page, "title", None)
            if not isinstance(title, str):
                continue

            for keyword in self.extract_keywords(title):
                for position in find_keyword_positions(content_lower, keyword):
                    sentence = find_sentence_at_position(sentences, position)
                    if sentence is None:
                        continue
                    if has_link_nearby(target_content, position, self.config.nearby_link_range):
                        continue

                    opportunities.append(LinkOpportunity(
                        from_page=SOURCE_MARKER,
                        to_page=page.slug,
                        anchor_text=keyword,
                        relevance_score=self.calculate_relevance(keyword, sentence.text),
                        context_snippet=sentence.text[:self.config.snippet_length],
                        position=position,
                        reason=f'Contextually relevant mention of "{keyword}"',
                    ))

        opportunities.sort(key=lambda o: o.relevance_score, reverse=True)
        return distribute_evenly(opportunities[:max_links], len(target_content))

    def extract_keywords(self, title: str) -> list[str]:
        """
        Extract link keywords from a page title.

        Lowercases the title, splits on whitespace and drops stop words and
        words of ``min_keyword_length`` characters or fewer.
        """
        return [
            word for word in title.lower().split()
            if word not in self.config.stop_words
            and len(word) > self.config.min_keyword_length
        ]

    def calculate_relevance(self, keyword: str, sentence: str) -> float:
        """Score a keyword mention by the sentence it appears in (0-100)."""
        score = 50
        sentence_lower = sentence.lower()

        keyword_count = len(re.findall(re.escape(keyword.lower()), sentence_lower))
        score += min(keyword_count * 10, 30)

        if len(sentence) < 150:
            score += 10
        # Case-insensitive, so "Learn" at a sentence start also counts
        if any(verb in sentence_lower for verb in self.config.instructional_verbs):
            score += 10

        return float(min(score, 100))

    # ------------------------------------------------------------------
    # Injection
    # ------------------------------------------------------------------

    def inject_contextual_links(
        self,
        content: str,
        opportunities: Sequence[LinkOpportunity],
    ) -> str:
        """
        Insert anchor tags for the given opportunities, in order.

        Each opportunity's anchor text is re-located within
        ``relocation_window`` characters of its recorded offset, since earlier
        insertions shift later text. Matches inside an existing tag or anchor
        are ignored, so running the same opportunities twice never nests or
        duplicates an anchor. Opportunities that cannot be re-located are
        skipped.

        Args:
            content: Text to modify.
            opportunities: Opportunities as returned by
                generate_link_opportunities.

        Returns:
            The content with anchors inserted.
        """
        if not isinstance(content, str) or not content:
            return content

        modified = content
        used_offsets: set[int] = set()

        for opp in opportunities:
            if opp.position in used_offsets or not opp.anchor_text:
                continue

            match = self._relocate_anchor(modified, opp)
            if match is None:
                continue

            start, end = match
            anchor = (
                f'<a href="/{opp.to_page}" class="internal-link">'
                f"{modified[start:end]}</a>"
            )
            modified = modified[:start] + anchor + modified[end:]

            used_offsets.add(opp.position)
            used_offsets.add(start)

        return modified

    def _relocate_anchor(self, content: str, opp: LinkOpportunity) -> Optional[tuple[int, int]]:
        """Find the anchor text near the recorded offset, outside any markup."""
        if opp.position < 0 or opp.position > len(content):
            return None

        protected = _protected_spans(content)
        # Case-insensitive; the document casing is kept inside the anchor
        pattern = re.compile(re.escape(opp.anchor_text), re.IGNORECASE)
        limit = opp.position + self.config.relocation_window

        for match in pattern.finditer(content, opp.position):
            if match.start() >= limit:
                break
            if not _inside_spans(match.start(), match.end(), protected):
                return match.start(), match.end()

        return None

    # ------------------------------------------------------------------
    # Topic clusters
    # ------------------------------------------------------------------

    def identify_topic_clusters(self, pages: Sequence[SitemapPage]) -> list[TopicCluster]:
        """
        Group pages into clusters around pillar pages.

        Pages are visited in order; an unassigned page whose related set (all
        other pages sharing a title keyword) has at least two members becomes
        a pillar, and it and its members are assigned. A page assigned to an
        earlier cluster never becomes a pillar, but may still be a member of a
        later one.

        Returns:
            Clusters sorted by topic relevance, highest first.
        """
        clusters: list[TopicCluster] = []
        assigned: set[str] = set()

        for page in pages:
            if page.id in assigned:
                continue

            related = self.find_related_pages(page, pages)
            if len(related) < 2:
                continue

            clusters.append(TopicCluster(
                pillar_page=page,
                cluster_pages=related,
                link_density=calculate_cluster_link_density(page, related),
                topic_relevance=self.calculate_topic_relevance(page, related),
            ))
            assigned.add(page.id)
            assigned.update(p.id for p in related)

        clusters.sort(key=lambda c: c.topic_relevance, reverse=True)
        return clusters

    def find_related_pages(
        self,
        page: SitemapPage,
        all_pages: Sequence[SitemapPage],
    ) -> list[SitemapPage]:
        """Pages sharing at least one title keyword, most shared first."""
        related = []
        for other in all_pages:
            if other.id == page.id:
                continue
            shared = self.shared_keyword_count(page, other)
            if shared > 0:
                related.append((shared, other))

        related.sort(key=lambda pair: pair[0], reverse=True)
        return [other for _, other in related[:self.config.max_related_pages]]

    def shared_keyword_count(self, page: SitemapPage, other: SitemapPage) -> int:
        """Number of the page's title keywords also found in the other title."""
        other_keywords = set(self.extract_keywords(other.title))
        return sum(1 for k in self.extract_keywords(page.title) if k in other_keywords)

    def calculate_topic_relevance(self, pillar: SitemapPage, cluster: Sequence[SitemapPage]) -> float:
        """20 x mean shared-keyword count between pillar and members."""
        if not cluster:
            return 0.0
        total_overlap = sum(self.shared_keyword_count(pillar, p) for p in cluster)
        return total_overlap / len(cluster) * 20

    # ------------------------------------------------------------------
    # Strategy
    # ------------------------------------------------------------------

    def generate_linking_strategy(self, clusters: Sequence[TopicCluster]) -> LinkingStrategy:
        """
        Turn clusters into hub recommendations and suggested links.

        Suggested links: pillar to member (95), member to pillar (90) and
        member to every other member (60), sorted by priority and capped.
        """
        recommendations = []
        missing_links: list[SuggestedLink] = []

        for cluster in clusters:
            pillar_slug = cluster.pillar_page.slug
            recommendations.append(
                f'Create a pillar page hub for "{cluster.pillar_page.title}" '
                f"linking to {len(cluster.cluster_pages)} related articles"
            )

            for member in cluster.cluster_pages:
                missing_links.append(SuggestedLink(member.slug, pillar_slug, MEMBER_TO_PILLAR_PRIORITY))
                missing_links.append(SuggestedLink(pillar_slug, member.slug, PILLAR_TO_MEMBER_PRIORITY))
                for other in cluster.cluster_pages:
                    if other.id != member.id:
                        missing_links.append(
                            SuggestedLink(member.slug, other.slug, MEMBER_TO_MEMBER_PRIORITY)
                        )

        missing_links.sort(key=lambda link: link.priority, reverse=True)
        return LinkingStrategy(
            recommendations=recommendations,
            missing_links=missing_links[:self.config.max_suggested_links],
        )


def extract_sentences(text: str) -> list[Sentence]:
    """Split text into sentences terminated by runs of . ! or ?"""
    return [
        Sentence(text=m.group(0), start=m.start(), end=m.end())
        for m in SENTENCE_PATTERN.finditer(text)
    ]


def find_keyword_positions(content_lower: str, keyword: str) -> list[int]:
    """Offsets of every non-overlapping occurrence of keyword."""
    positions = []
    needle = keyword.lower()
    if not needle:
        return positions

    index = content_lower.find(needle)
    while index != -1:
        positions.append(index)
        index = content_lower.find(needle, index + len(needle))
    return positions


def find_sentence_at_position(sentences: Sequence[Sentence], position: int) -> Optional[Sentence]:
    """Return the sentence enclosing position, if any."""
    for sentence in sentences:
        if sentence.start <= position <= sentence.end:
            return sentence
    return None


def has_link_nearby(content: str, position: int, span: int = 100) -> bool:
    """Check for an anchor tag within span characters of position."""
    before = content[max(0, position - span):position]
    after = content[position:position + span]
    return ANCHOR_OPEN in before or ANCHOR_OPEN in after


def distribute_evenly(opportunities: Sequence[LinkOpportunity], content_length: int) -> list[LinkOpportunity]:
    """
    Thin opportunities so kept ones are spread through the text.

    Walks the list in the given order and keeps a candidate if it is the
    first one kept or sits at least ``content_length / (n + 1)`` characters
    past the last kept candidate. Short texts with many candidates can keep
    far fewer than n.
    """
    min_distance = content_length // (len(opportunities) + 1)
    distributed: list[LinkOpportunity] = []
    last_position = 0

    for opp in opportunities:
        if not distributed or opp.position - last_position >= min_distance:
            distributed.append(opp)
            last_position = opp.position

    return distributed


def calculate_cluster_link_density(pillar: SitemapPage, cluster: Sequence[SitemapPage]) -> float:
    """Members per 1000 words of pillar content, as a percentage."""
    word_count = pillar.word_count or 1000
    return len(cluster) / max(word_count, 1000) * 100


def _protected_spans(content: str) -> list[tuple[int, int]]:
    spans = [m.span() for m in ANCHOR_ELEMENT_PATTERN.finditer(content)]
    spans.extend(m.span() for m in TAG_PATTERN.finditer(content))
    return spans


def _inside_spans(start: int, end: int, spans: Sequence[tuple[int, int]]) -> bool:
    return any(start < span_end and end > span_start for span_start, span_end in spans)
