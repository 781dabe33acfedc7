import math
import pytest

from vlife.cell import Cell
from vlife.cell_rank import CellRank
from vlife.genome import Gene, Genome
from vlife.rng import make_rng


def tagged(value):
    return Genome({"tag": Gene(float(value))})


def test_rank_keeps_best_scores():
    rank = CellRank(3)
    for score in [5.0, 1.0, 7.0, 3.0, 9.0]:
        rank.insert(score, tagged(score))

    assert len(rank) == 3
    assert rank.scores() == [5.0, 7.0, 9.0]
    best_score, best_genome = rank.best()
    assert best_score == 9.0
    assert best_genome.value("tag") == 9.0


def test_rank_insert_reports_eviction():
    rank = CellRank(2)
    assert rank.insert(5.0, tagged(5))
    assert rank.insert(6.0, tagged(6))
    assert not rank.insert(1.0, tagged(1))
    assert rank.scores() == [5.0, 6.0]


def test_equal_scores_keep_insertion_order_and_evict_oldest():
    rank = CellRank(2)
    rank.insert(1.0, tagged("1"))
    rank.insert(1.0, tagged("2"))
    rank.insert(1.0, tagged("3"))

    assert rank.scores() == [1.0, 1.0]
    # Newest equal entry ranks highest
    assert rank.best()[1].value("tag") == 3.0
    entries = rank.to_dict()['entries']
    assert [entry['genome']['tag'] for entry in entries] == [2.0, 3.0]


def test_nan_score_rejected():
    rank = CellRank(2)
    with pytest.raises(ValueError):
        rank.insert(math.nan, tagged(1))
    assert len(rank) == 0


def test_invalid_size_rejected():
    with pytest.raises(ValueError):
        CellRank(0)


def test_choose_random_genome():
    rank = CellRank(5)
    rng = make_rng(1, "rank")
    assert rank.choose_random_genome(rng) is None
    assert rank.best() is None

    for score in range(5):
        rank.insert(float(score), tagged(score))
    seen = {rank.choose_random_genome(rng).value("tag") for _ in range(100)}
    assert seen == {0.0, 1.0, 2.0, 3.0, 4.0}


def test_chosen_genome_is_a_copy():
    rank = CellRank(1)
    rank.insert(1.0, tagged(1))
    genome = rank.choose_random_genome(make_rng(1, "copy"))
    genome.genes["tag"].value = 99.0
    assert rank.best()[1].value("tag") == 1.0


def test_insert_cell_stores_its_genome():
    cell = Cell.random(make_rng(1, "cell"), object_id=0, size=4.0)
    rank = CellRank(1)
    rank.insert(2.0, cell)
    genome = rank.best()[1]
    assert genome.value("movement_cost") == cell.movement_cost
    assert "neurons/layer2/bias/000" in genome


def test_dict_round_trip():
    rank = CellRank(3)
    for score in [2.0, 4.0, 3.0]:
        rank.insert(score, tagged(score))
    restored = CellRank.from_dict(rank.to_dict())
    assert restored.max_size == 3
    assert restored.scores() == [2.0, 3.0, 4.0]
    assert restored.best()[1] == rank.best()[1]
