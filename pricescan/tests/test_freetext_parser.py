from pricescan.app.schemas.analysis import (
    DEFAULT_ONLINE_PLATFORMS,
    UNKNOWN_NAME,
    default_analysis_result,
)
from pricescan.app.services.freetext import parse_freetext


def test_name_is_extracted_and_copied_to_every_search_term():
    result = parse_freetext("item name：Widget")

    assert result.name == "Widget"
    online = result.purchase_links.online
    assert [link.platform for link in online] == DEFAULT_ONLINE_PLATFORMS
    assert all(link.search_term == "Widget" for link in online)


def test_text_without_labels_yields_the_default_object():
    text = "I think this is a nice lamp.\nIt probably costs a lot."

    assert parse_freetext(text) == default_analysis_result()
    assert parse_freetext("") == default_analysis_result()


def test_all_labels_in_source_locale():
    text = "\n".join(
        [
            "物品名稱：大同電鍋",
            "估計價格：NT$ 2,800",
            "購買管道：全國電子、燦坤",
            "物品描述：綠色十人份電鍋",
            "歷史由來：1960 年推出的國民家電",
        ]
    )

    result = parse_freetext(text)

    assert result.name == "大同電鍋"
    assert result.price == "NT$ 2,800"
    assert result.availability == "全國電子、燦坤"
    assert result.description == "綠色十人份電鍋"
    assert result.origin == "1960 年推出的國民家電"


def test_labels_match_case_insensitively_with_ascii_colon():
    result = parse_freetext("ITEM NAME: Desk Lamp\nEstimated Price: NT$ 900")

    assert result.name == "Desk Lamp"
    assert result.price == "NT$ 900"


def test_value_keeps_text_after_the_first_colon():
    result = parse_freetext("Historical origin: first sold at 10:30 on launch day")

    assert result.origin == "first sold at 10:30 on launch day"


def test_first_non_empty_value_wins():
    text = "Item name:\nItem name: First\nItem name: Second"

    assert parse_freetext(text).name == "First"


def test_unmatched_fields_keep_placeholders_and_search_terms_stay_default():
    result = parse_freetext("Estimated price: NT$ 10")
    defaults = default_analysis_result()

    assert result.price == "NT$ 10"
    assert result.name == UNKNOWN_NAME
    assert result.description == defaults.description
    assert result.purchase_links == defaults.purchase_links


def test_label_line_without_colon_is_ignored():
    assert parse_freetext("item name Widget").name == UNKNOWN_NAME
