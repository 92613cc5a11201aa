"""Tests for structure detection and brand ranking."""

from app.analysis.ranking_parser import detect_structure, estimate_position, extract_list_items, find_brand_rank
from app.analysis.types import StructureType


class TestDetectStructure:
    def test_numbered(self):
        assert detect_structure("1. Asana\n2. Acme\n3. Trello") == StructureType.NUMBERED_LIST

    def test_numbered_with_markdown(self):
        text = "### 1. Asana\n**2.** Acme\n3) Trello"
        assert detect_structure(text) == StructureType.NUMBERED_LIST

    def test_bulleted(self):
        assert detect_structure("- Asana\n- Acme\n• Trello") == StructureType.BULLETED_LIST

    def test_table(self):
        text = "| Tool | Price |\n|---|---|\n| Asana | $10 |\n| Acme | $5 |"
        assert detect_structure(text) == StructureType.TABLE

    def test_mixed(self):
        text = "1. Asana\n   - boards\n2. Acme\n   - timelines"
        assert detect_structure(text) == StructureType.MIXED

    def test_narrative(self):
        assert detect_structure("Acme is a solid tool. Many teams like it.") == StructureType.NARRATIVE

    def test_single_item_is_not_a_list(self):
        assert detect_structure("1. Acme is my pick.") == StructureType.NARRATIVE


class TestExtractListItems:
    def test_numbered_in_document_order(self):
        items = extract_list_items("1. Asana\n2. Acme\n3. Trello", StructureType.NUMBERED_LIST)
        assert items == ["Asana", "Acme", "Trello"]

    def test_table_skips_header(self):
        text = "| Tool | Price |\n|---|---|\n| Asana | $10 |\n| Acme | $5 |"
        assert extract_list_items(text, StructureType.TABLE) == ["Asana | $10", "Acme | $5"]

    def test_mixed_prefers_numbered_entries(self):
        text = "1. Asana\n   - boards\n2. Acme\n   - timelines"
        assert extract_list_items(text, StructureType.MIXED) == ["Asana", "Acme"]

    def test_narrative_has_no_items(self):
        assert extract_list_items("plain prose", StructureType.NARRATIVE) == []


class TestFindBrandRank:
    def test_rank_counts_recognized_entries(self):
        items = ["Overview", "Asana", "Pricing notes", "Acme", "Trello"]
        assert find_brand_rank(items, "Acme", ["Asana", "Trello"]) == 2

    def test_rank_without_competitors_counts_every_entry(self):
        items = ["Monday", "Notion", "Acme"]
        assert find_brand_rank(items, "Acme", []) == 3

    def test_case_insensitive(self):
        assert find_brand_rank(["ASANA", "acme corp"], "Acme", ["Asana"]) == 2

    def test_first_occurrence_wins(self):
        assert find_brand_rank(["Acme", "Asana", "Acme Pro"], "Acme", ["Asana"]) == 1

    def test_not_listed(self):
        assert find_brand_rank(["Asana", "Trello"], "Acme", ["Asana"]) is None

    def test_empty_brand(self):
        assert find_brand_rank(["Acme"], "", []) is None


class TestEstimatePosition:
    def test_numbered_answer(self):
        text = "Top tools:\n1. Asana - great\n2. Acme - fast\n3. Trello - simple"
        position, structure = estimate_position(text, "Acme", ["Asana", "Trello"])
        assert position == 2
        assert structure == StructureType.NUMBERED_LIST

    def test_narrative_has_no_position(self):
        position, structure = estimate_position("Acme is a good choice.", "Acme", ["Asana"])
        assert position is None
        assert structure == StructureType.NARRATIVE

    def test_brand_outside_the_list(self):
        text = "1. Asana\n2. Trello\n\nAcme is also worth a look."
        position, _ = estimate_position(text, "Acme", ["Asana", "Trello"])
        assert position is None
