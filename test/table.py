"""
Table engine tests (humanizing, sorting, filtering, rendering, schema faults).

Scope
- Validate byte and age humanization at every unit boundary.
- Validate stable multi-key sorting in both directions.
- Validate output filters, header suppression, tab separation and parseable mode.
- Validate schema violations (missing values, mixed kinds, unknown columns).

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (TableBuilder, Row, humanize_bytes, humanize_age).
"""

from __future__ import annotations

import datetime
import unittest
from unittest import TestCase

from hiercmd import TableBuilder, Row, Table, humanize_bytes, humanize_age
from hiercmd.faults import SchemaViolationError, InvalidColumnError, ConfigurationError, FaultCode


def basic_row(id, name):
    return Row().add_u64("id", id).add_str("name", name)


def basic_data(table):
    table.add_row(basic_row(1, "john"))
    table.add_row(basic_row(4, "bruce"))
    table.add_row(basic_row(2, "albert"))
    table.add_row(basic_row(3, "zeta"))


def basic_data_dups(table):
    table.add_row(basic_row(1, "john"))
    table.add_row(basic_row(4, "bruce"))
    table.add_row(basic_row(2, "albert"))
    table.add_row(basic_row(2, "demonstration"))
    table.add_row(basic_row(3, "zeta"))
    table.add_row(basic_row(5, "almond"))
    table.add_row(basic_row(1, "almond"))
    table.add_row(basic_row(2, "carrot"))


def longer_data(table):
    for id, name, colour, rating in (
            (2, "chocolate", "brown", 5),
            (1, "vanilla", "white", 4),
            (3, "strawberry", "pink", 8),
            (4, "pistachio", "green", 4),
            (5, "lemon", "yellow", 6),
    ):
        table.add_row(Row().add_u64("id", id).add_str("name", name).add_str("colour", colour).add_u64("rating", rating))


def longer_builder():
    return (
        TableBuilder()
        .add_column("id", 8, True)
        .add_column("name", 16, True)
        .add_column("colour", 16, True)
        .add_column("rating", 8, True)
    )


class TestHumanize(TestCase):
    """Unit boundaries for byte counts and ages."""

    def testBytesBelowKibibyteArePlain(self):
        self.assertEqual(humanize_bytes(0), "0")
        self.assertEqual(humanize_bytes(1023), "1023")

    def testBytesThresholdsAreInclusive(self):
        self.assertEqual(humanize_bytes(1024), "1.00K")
        self.assertEqual(humanize_bytes(1024 * 1024), "1.00M")
        self.assertEqual(humanize_bytes(1024 * 1024 * 1024), "1.00G")

    def testBytesFractions(self):
        self.assertEqual(humanize_bytes(1536), "1.50K")
        self.assertEqual(humanize_bytes(5 * 1024 * 1024 * 1024 + 512 * 1024 * 1024), "5.50G")

    def testBytesParseable(self):
        self.assertEqual(humanize_bytes(2048, parseable=True), "2048")

    def testAgeSeconds(self):
        self.assertEqual(humanize_age(0), "0s")
        self.assertEqual(humanize_age(59), "59s")

    def testAgeMinutesAndHours(self):
        self.assertEqual(humanize_age(60), "1m00s")
        self.assertEqual(humanize_age(803), "13m23s")
        self.assertEqual(humanize_age(3600), "1h00m")
        self.assertEqual(humanize_age(3600 + 7 * 60 + 59), "1h07m")

    def testAgeDays(self):
        self.assertEqual(humanize_age(86400), "1d00h")
        self.assertEqual(humanize_age(98 * 86400 + 5 * 3600), "98d05h")

    def testAgeMonthsFromNinetyNineDays(self):
        self.assertEqual(humanize_age(99 * 86400), "3M09d")
        self.assertEqual(humanize_age(364 * 86400), "12M04d")

    def testAgeYears(self):
        self.assertEqual(humanize_age(365 * 86400), "1y00M")
        self.assertEqual(humanize_age(400 * 86400), "1y01M")

    def testAgeMonthsWithinYearStopAtEleven(self):
        self.assertEqual(humanize_age((365 + 359) * 86400), "1y11M")
        self.assertEqual(humanize_age(729 * 86400), "1y11M")
        self.assertEqual(humanize_age(730 * 86400), "2y00M")

    def testAgeParseable(self):
        self.assertEqual(humanize_age(86400, parseable=True), "86400")


class TestRow(TestCase):
    """Row construction and value validation."""

    def testNamesAreCaseInsensitive(self):
        row = Row().add_str("Name", "x")
        self.assertIn("NAME", row)
        self.assertEqual(row.get("name").datum, "x")

    def testAgeAcceptsTimedelta(self):
        row = Row().add_age("age", datetime.timedelta(minutes=2, seconds=3))
        self.assertEqual(row.get("age").datum, 123)

    def testNegativeNumbersRejected(self):
        with self.assertRaises(ValueError):
            Row().add_u64("id", -1)

    def testBooleanNumbersRejected(self):
        with self.assertRaises(TypeError):
            Row().add_bytes("size", True)

    def testAddRowRequiresRow(self):
        table = TableBuilder().add_column("id", 4, True).build()
        with self.assertRaises(TypeError):
            table.add_row({"id": 1})


class TestSorting(TestCase):
    """Stable lexicographic sorting over one or more keys."""

    def testNoSortKeepsInsertionOrder(self):
        table = TableBuilder().show_header(True).add_column("id", 8, True).add_column("name", 24, True).build()
        basic_data(table)
        self.assertEqual(
            table.output(),
            "ID       NAME\n"
            "1        john\n"
            "4        bruce\n"
            "2        albert\n"
            "3        zeta\n",
        )

    def testSortById(self):
        table = (
            TableBuilder()
            .add_column("id", 9, True)
            .add_column("name", 24, True)
            .sort_from_list_asc("id")
            .build()
        )
        basic_data(table)
        self.assertEqual(
            table.output(),
            "ID        NAME\n"
            "1         john\n"
            "2         albert\n"
            "3         zeta\n"
            "4         bruce\n",
        )

    def testSortByName(self):
        table = TableBuilder().add_column("id", 8, True).add_column("name", 24, True).sort_from_list_asc("name").build()
        basic_data(table)
        self.assertEqual(
            table.output(),
            "ID       NAME\n"
            "2        albert\n"
            "4        bruce\n"
            "1        john\n"
            "3        zeta\n",
        )

    def testSortByIdThenName(self):
        table = TableBuilder().add_column("id", 8, True).add_column("name", 24, True).sort_from_list_asc("id,name").build()
        basic_data_dups(table)
        self.assertEqual(
            table.output(),
            "ID       NAME\n"
            "1        almond\n"
            "1        john\n"
            "2        albert\n"
            "2        carrot\n"
            "2        demonstration\n"
            "3        zeta\n"
            "4        bruce\n"
            "5        almond\n",
        )

    def testSortByNameThenId(self):
        table = TableBuilder().add_column("id", 8, True).add_column("name", 24, True).sort_from_list_asc("name,id").build()
        basic_data_dups(table)
        self.assertEqual(
            table.output(),
            "ID       NAME\n"
            "2        albert\n"
            "1        almond\n"
            "5        almond\n"
            "4        bruce\n"
            "2        carrot\n"
            "2        demonstration\n"
            "1        john\n"
            "3        zeta\n",
        )

    def testDescendingSortIsStableForTies(self):
        table = longer_builder().sort_from_list_desc("rating").output_from_list("rating,name,colour").build()
        longer_data(table)
        self.assertEqual(
            table.output(),
            "RATING   NAME             COLOUR\n"
            "8        strawberry       pink\n"
            "6        lemon            yellow\n"
            "5        chocolate        brown\n"
            "4        vanilla          white\n"
            "4        pistachio        green\n",
        )

    def testAscendingSortIsStableForTies(self):
        table = longer_builder().sort_from_list_asc("rating").output_from_list("rating,name,colour").build()
        longer_data(table)
        self.assertEqual(
            table.output(),
            "RATING   NAME             COLOUR\n"
            "4        vanilla          white\n"
            "4        pistachio        green\n"
            "5        chocolate        brown\n"
            "6        lemon            yellow\n"
            "8        strawberry       pink\n",
        )

    def testLaterSortCallReplacesEarlier(self):
        builder = TableBuilder().add_column("id", 2, True).sort_from_list_asc("id").sort_from_list_desc("id")
        self.assertEqual([(order.column, order.ascending) for order in builder.sort_order], [("id", False)])

    def testNoneLeavesConfigurationUntouched(self):
        builder = TableBuilder().add_column("id", 2, True).sort_from_list_asc("id").output_from_list("id")
        builder.sort_from_list_desc(None).output_from_list(None)
        self.assertEqual(builder.sort_order[0].ascending, True)
        self.assertEqual(builder.output_filter, ("id",))

    def testSortingMixedKindsRaises(self):
        table = TableBuilder().add_column("id", 4, True).sort_from_list_asc("id").build()
        table.add_row(Row().add_u64("id", 1))
        table.add_row(Row().add_str("id", "two"))
        with self.assertRaises(SchemaViolationError) as context:
            table.output()
        self.assertEqual(context.exception.code, FaultCode.HETEROGENEOUS_COLUMN)

    def testSortingMissingValueRaises(self):
        table = TableBuilder().add_column("id", 4, True).add_column("name", 4, True).sort_from_list_asc("name").build()
        table.add_row(Row().add_u64("id", 1).add_str("name", "a"))
        table.add_row(Row().add_u64("id", 2))
        with self.assertRaises(SchemaViolationError) as context:
            table.output()
        self.assertEqual(context.exception.code, FaultCode.MISSING_VALUE)


class TestRendering(TestCase):
    """Column selection and line layout."""

    def testOutputFilterOrdersColumns(self):
        table = longer_builder().output_from_list("rating,name").build()
        longer_data(table)
        self.assertEqual(
            table.output(),
            "RATING   NAME\n"
            "5        chocolate\n"
            "4        vanilla\n"
            "8        strawberry\n"
            "4        pistachio\n"
            "6        lemon\n",
        )

    def testOutputFilterIsCaseInsensitive(self):
        table = longer_builder().output_from_list(" Name ,RATING").build()
        table.add_row(Row().add_str("name", "x").add_u64("rating", 1))
        self.assertEqual(table.output(), "NAME             RATING\nx                1\n")

    def testNonDefaultColumnsHiddenWithoutFilter(self):
        table = TableBuilder().add_column("name", 6, True).add_column("number", 6, False).build()
        table.add_row(Row().add_str("name", "one").add_u64("number", 1))
        self.assertEqual(table.output(), "NAME\none\n")

    def testUnknownFilterColumnRaises(self):
        table = TableBuilder().add_column("id", 4, True).output_from_list("id,bogus,also").build()
        with self.assertRaises(InvalidColumnError) as context:
            table.output()
        self.assertEqual(str(context.exception), "invalid column names: also, bogus")

    def testMissingDisplayedValueRaises(self):
        table = TableBuilder().add_column("id", 4, True).add_column("name", 4, True).build()
        table.add_row(Row().add_u64("id", 1))
        with self.assertRaises(SchemaViolationError):
            table.output()

    def testEmptyTableRendersHeaderOnly(self):
        table = TableBuilder().add_column("id", 8, True).add_column("name", 24, True).build()
        self.assertEqual(table.output(), "ID       NAME\n")

    def testHeaderDisabled(self):
        table = TableBuilder().add_column("id", 4, True).disable_header(True).build()
        table.add_row(Row().add_u64("id", 7))
        self.assertEqual(table.output(), "7\n")

    def testDisableHeaderFalseKeepsHeader(self):
        table = TableBuilder().add_column("id", 4, True).disable_header(False).build()
        self.assertEqual(table.output(), "ID\n")

    def testTabSeparated(self):
        table = TableBuilder().add_column("id", 8, True).add_column("name", 24, True).tab_separated(True).build()
        table.add_row(Row().add_u64("id", 1).add_str("name", "a\tb"))
        self.assertEqual(table.output(), "ID\tNAME\n1\ta b\n")

    def testLongValuesOverflowTheirColumn(self):
        table = TableBuilder().add_column("name", 4, True).add_column("id", 2, True).build()
        table.add_row(Row().add_str("name", "abcdefg").add_u64("id", 1))
        self.assertEqual(table.output(), "NAME ID\nabcdefg 1\n")

    def testHumanizedAndParseable(self):
        builder = TableBuilder().add_column("size", 6, True).add_column("age", 6, True)
        row = Row().add_bytes("size", 2048).add_age("age", 90)

        table = builder.build()
        table.add_row(row)
        self.assertEqual(table.output(), "SIZE   AGE\n2.00K  1m30s\n")

        table = builder.parseable(True).build()
        table.add_row(row)
        self.assertEqual(table.output(), "SIZE   AGE\n2048   90\n")

    def testBuildSnapshotsConfiguration(self):
        builder = TableBuilder().add_column("id", 4, True)
        table = builder.build()
        builder.add_column("id", 10, False)
        self.assertIsInstance(table, Table)
        table.add_row(Row().add_u64("id", 1))
        self.assertEqual(table.output(), "ID\n1\n")


class TestBuilder(TestCase):
    """Schema bookkeeping on the builder."""

    def testColumnNamesSortedAndLowerCased(self):
        builder = TableBuilder().add_column("Size", 4, True).add_column("age", 4, True).add_column("NAME", 4, False)
        self.assertEqual(builder.column_names(), ["age", "name", "size"])

    def testMissingColumnNamesIncludeSortKeys(self):
        builder = TableBuilder().add_column("id", 4, True).output_from_list("id,zed").sort_from_list_asc("alpha")
        self.assertEqual(builder.missing_column_names(), ["alpha", "zed"])

    def testReAddingColumnUpdatesInPlace(self):
        builder = TableBuilder().add_column("id", 4, True).add_column("name", 4, True).add_column("ID", 9, False)
        self.assertEqual([(column.name, column.width, column.default) for column in builder.columns], [
            ("id", 9, False),
            ("name", 4, True),
        ])

    def testSetColumnDefault(self):
        builder = TableBuilder().add_column("id", 4, False).set_column_default("id", True)
        self.assertTrue(builder.columns[0].default)

    def testSetColumnDefaultUnknownRaises(self):
        with self.assertRaises(ConfigurationError):
            TableBuilder().set_column_default("nope", True)

    def testColumnWidthValidated(self):
        with self.assertRaises(ValueError):
            TableBuilder().add_column("id", -1, True)


if __name__ == "__main__":
    unittest.main()
