"""Property-based tests for the variation operators

Covers genome creation, point crossover, numeric recombination and every
mutation type: bounds are honoured, no-op crossovers are excluded when
requested, chunks stay aligned and retry limits always terminate.
"""

import numpy as np
import pytest
from hypothesis import given, strategies as st, settings

from vector_evo.evolution.crossover import CrossoverOperator
from vector_evo.evolution.exceptions import (
    ContractViolationError,
    ElementKindMismatchError,
    SpeciesMismatchError,
)
from vector_evo.evolution.factory import GenomeFactory, uniform_integer, uniform_real
from vector_evo.evolution.genome import Genome
from vector_evo.evolution.models import CrossoverType, Gene
from vector_evo.evolution.mutation import MutationOperator
from vector_evo.evolution.notifications import (
    INTERMEDIATE_GAVE_UP,
    LENGTH_MISMATCH,
    RETRY_LIMIT_REACHED,
    notification_counts,
    reset_notifications,
)
from vector_evo.evolution.species import VectorSpecies


class StubbornGene(Gene):
    """Gene whose mutations never change it; counts reset calls."""

    resets = 0

    def reset(self, rng):
        StubbornGene.resets += 1

    def __eq__(self, other):
        return isinstance(other, StubbornGene)

    def __hash__(self):
        return 0


class CounterGene(Gene):
    """Gene holding a small integer."""

    def __init__(self, value: int = 0):
        self.value = value

    def reset(self, rng):
        self.value = int(rng.integers(0, 1000))

    def __eq__(self, other):
        return isinstance(other, CounterGene) and other.value == self.value

    def __hash__(self):
        return hash(self.value)


def make_species(overrides=None):
    declarations = {
        "element-kind": "double",
        "genome-size": 8,
        "min-gene": 0.0,
        "max-gene": 1.0,
        "mutation-prob": 1.0,
        "mutation-type": "reset",
        "crossover-type": "one",
    }
    declarations.update(overrides or {})
    return VectorSpecies.setup(declarations)


def filled(species, value):
    return Genome(species, [value] * species.genome_size)


BOUNDED_SPECIES = [
    make_species({
        "min-gene": -2.0, "max-gene": 3.0,
        "mutation-prob": 0.5, "mutation-type": "gauss", "mutation-stdev": 1.0,
        "mutation-bounded": True, "crossover-type": "line", "line-extension": 0.25,
    }),
    make_species({
        "element-kind": "float", "min-gene": 0.1, "max-gene": 0.3,
        "mutation-prob": 0.5, "mutation-type": "polynomial", "mutation-distribution-index": 20,
        "mutation-bounded": True, "crossover-type": "sbx", "crossover-distribution-index": 2,
    }),
    make_species({
        "element-kind": "integer", "min-gene": -5, "max-gene": 5,
        "mutation-prob": 0.5, "mutation-type": "integer-random-walk",
        "random-walk-probability": 0.5, "mutation-bounded": True,
        "crossover-type": "intermediate", "line-extension": 0.5,
    }),
    make_species({
        "element-kind": "short", "min-gene": -3, "max-gene": 3,
        "min-gene.2": 100, "max-gene.2": 101,
        "mutation-prob": 0.5, "crossover-type": "any", "crossover-prob": 0.3,
    }),
]

UNIFORM_SPECIES = make_species({
    "genome-size": "uniform", "min-initial-size": 2, "max-initial-size": 6,
})


# =============================================================================
# Property 1: operators keep genes inside their bounds
# =============================================================================

class TestBoundsInvariant:
    """Test creation, crossover and bounded mutation stay inside the bounds"""

    @given(st.integers(min_value=0, max_value=2**32 - 1), st.sampled_from(range(len(BOUNDED_SPECIES))))
    @settings(max_examples=100)
    def test_variation_stays_in_bounds(self, seed, which):
        species = BOUNDED_SPECIES[which]
        rng = np.random.default_rng(seed)
        a = species.create_individual(rng)
        b = species.create_individual(rng)
        assert a.is_in_range() and b.is_in_range()
        for _ in range(5):
            species.crossover(a, b, rng)
            species.mutate(a, rng)
            species.mutate(b, rng)
            assert a.is_in_range()
            assert b.is_in_range()

    def test_int32_full_range_reset(self):
        species = make_species({
            "element-kind": "integer", "genome-size": 400,
            "min-gene": -2**31, "max-gene": 2**31 - 1,
        })
        genome = species.create_individual(np.random.default_rng(3))
        assert genome.genes.dtype == np.int32
        values = genome.to_list()
        assert min(values) < -2**30
        assert max(values) > 2**30

    def test_uniform_helpers_handle_extreme_ranges(self):
        rng = np.random.default_rng(0)
        limit = float(np.finfo(np.float64).max)
        for _ in range(100):
            value = uniform_real(rng, -limit, limit)
            assert np.isfinite(value)
        assert uniform_real(rng, 2.0, 2.0) == 2.0
        assert uniform_integer(rng, 7, 7) == 7


# =============================================================================
# Property 2: point crossover
# =============================================================================

class TestPointCrossover:
    """Test one-point, two-point and any-point crossover"""

    @pytest.mark.parametrize("crossover_type", ["one-nonempty", "two-nonempty"])
    def test_nonempty_crossover_always_exchanges(self, crossover_type):
        """Test nonempty variants never leave both parents unchanged"""
        species = make_species({"chunk-size": 2, "crossover-type": crossover_type})
        rng = np.random.default_rng(11)
        for _ in range(1000):
            a = filled(species, 0.0)
            b = filled(species, 1.0)
            species.crossover(a, b, rng)
            assert a != filled(species, 0.0)
            assert a.to_list() != b.to_list()

    @pytest.mark.parametrize("crossover_type", ["one", "two"])
    def test_plain_crossover_noop_rate(self, crossover_type):
        """Test plain variants are no-ops with probability 1/N chunks"""
        species = make_species({"chunk-size": 2, "crossover-type": crossover_type})
        rng = np.random.default_rng(5)
        trials = 4000
        noops = 0
        for _ in range(trials):
            a = filled(species, 0.0)
            b = filled(species, 1.0)
            species.crossover(a, b, rng)
            if a == filled(species, 0.0):
                noops += 1
        assert abs(noops / trials - 0.25) < 0.04

    def test_one_point_swaps_a_prefix(self):
        species = make_species({"crossover-type": "one"})
        rng = np.random.default_rng(2)
        for _ in range(50):
            a = filled(species, 0.0)
            b = filled(species, 1.0)
            species.crossover(a, b, rng)
            values = a.to_list()
            swapped = values.count(1.0)
            assert values == [1.0] * swapped + [0.0] * (8 - swapped)
            assert [1.0 - value for value in b.to_list()] == values

    @given(st.integers(min_value=0, max_value=2**32 - 1))
    @settings(max_examples=100)
    def test_any_point_keeps_chunks_aligned(self, seed):
        """Test whole chunks move together"""
        species = make_species({
            "genome-size": 12, "chunk-size": 3, "crossover-type": "any", "crossover-prob": 0.5,
        })
        a = filled(species, 0.0)
        b = filled(species, 1.0)
        species.crossover(a, b, np.random.default_rng(seed))
        for chunk in range(4):
            values = a.to_list()[chunk * 3:(chunk + 1) * 3]
            assert len(set(values)) == 1
        assert sorted(a.to_list() + b.to_list()) == [0.0] * 12 + [1.0] * 12

    @given(st.integers(min_value=0, max_value=2**32 - 1),
           st.sampled_from(["one", "one-nonempty", "two", "two-nonempty"]))
    @settings(max_examples=100)
    def test_point_crossover_swaps_whole_chunks(self, seed, crossover_type):
        """Test one-point and two-point cuts fall on chunk boundaries"""
        species = make_species({
            "genome-size": 12, "chunk-size": 3, "crossover-type": crossover_type,
        })
        a = filled(species, 0.0)
        b = filled(species, 1.0)
        species.crossover(a, b, np.random.default_rng(seed))
        values = a.to_list()
        for chunk in range(4):
            assert len(set(values[chunk * 3:(chunk + 1) * 3])) == 1
        swapped = [index for index, value in enumerate(values) if value == 1.0]
        if swapped:
            start, end = swapped[0], swapped[-1] + 1
            assert swapped == list(range(start, end))
            assert start % 3 == 0 and end % 3 == 0
        if crossover_type.startswith("one"):
            assert not swapped or swapped[0] == 0
        if crossover_type.endswith("nonempty"):
            assert swapped
        assert [1.0 - value for value in b.to_list()] == values

    def test_gene_crossover_moves_genes(self):
        species = VectorSpecies.setup({
            "element-kind": "gene", "gene": CounterGene, "genome-size": 6,
            "mutation-prob": 0.0, "crossover-type": "two-nonempty",
        })
        a = Genome(species, [CounterGene(0) for _ in range(6)])
        b = Genome(species, [CounterGene(1) for _ in range(6)])
        species.crossover(a, b, np.random.default_rng(1))
        assert any(gene.value == 1 for gene in a.genes)
        assert sum(gene.value for gene in a.genes) + sum(gene.value for gene in b.genes) == 6

    def test_length_mismatch_uses_overlap(self):
        reset_notifications()
        species = make_species({
            "genome-size": "uniform", "min-initial-size": 0, "max-initial-size": 10,
        })
        a = Genome(species, [0.0] * 3)
        b = Genome(species, [1.0] * 5)
        species.crossover(a, b, np.random.default_rng(0), CrossoverType.TWO_POINT)
        assert len(a) == 3 and len(b) == 5
        assert b.to_list()[3:] == [1.0, 1.0]
        assert notification_counts()[LENGTH_MISMATCH] == 1


# =============================================================================
# Property 3: numeric recombination
# =============================================================================

class TestNumericRecombination:
    """Test line, intermediate and simulated binary crossover"""

    def test_line_zero_extension_stays_between_parents(self):
        species = make_species({"crossover-type": "line", "line-extension": 0.0})
        rng = np.random.default_rng(9)
        a = filled(species, 0.2)
        b = filled(species, 0.8)
        species.crossover(a, b, rng)
        for value in a.to_list() + b.to_list():
            assert 0.2 <= value <= 0.8
        offset = [x - 0.2 for x in a.to_list()]
        assert np.allclose(offset, offset[0])

    def test_intermediate_gives_up_on_impossible_parents(self):
        """Test out-of-bounds parents end after a capped number of tries"""
        reset_notifications()
        species = make_species({
            "genome-size": 1, "crossover-type": "intermediate", "line-extension": 0.0,
        })
        a = Genome(species, [5.0])
        b = Genome(species, [6.0])
        species.crossover(a, b, np.random.default_rng(0))
        assert a.to_list() == [5.0]
        assert b.to_list() == [6.0]
        assert notification_counts()[INTERMEDIATE_GAVE_UP] == 1

    def test_intermediate_integer_rounding(self):
        species = make_species({
            "element-kind": "integer", "min-gene": 0, "max-gene": 10,
            "crossover-type": "intermediate", "line-extension": 0.25,
        })
        a = filled(species, 2)
        b = filled(species, 9)
        species.crossover(a, b, np.random.default_rng(4))
        assert all(isinstance(value, int) for value in a.to_list())
        assert a.is_in_range() and b.is_in_range()

    def test_sbx_leaves_nearly_equal_parents(self):
        species = make_species({"crossover-type": "sbx", "crossover-distribution-index": 20})
        rng = np.random.default_rng(8)
        a = filled(species, 0.5)
        b = filled(species, 0.5 + 1e-15)
        species.crossover(a, b, rng)
        assert a == filled(species, 0.5)
        assert b == filled(species, 0.5 + 1e-15)

    def test_sbx_changes_distinct_parents(self):
        species = make_species({
            "genome-size": 32, "crossover-type": "sbx", "crossover-distribution-index": 2,
        })
        a = filled(species, 0.1)
        b = filled(species, 0.9)
        species.crossover(a, b, np.random.default_rng(8))
        assert a != filled(species, 0.1) or b != filled(species, 0.9)
        assert a.is_in_range() and b.is_in_range()

    def test_sbx_rejects_integer_genomes(self):
        species = make_species({"element-kind": "integer", "min-gene": 0, "max-gene": 5})
        a = filled(species, 0)
        b = filled(species, 5)
        with pytest.raises(ElementKindMismatchError):
            CrossoverOperator(species).crossover(a, b, np.random.default_rng(0), CrossoverType.SIMULATED_BINARY)

    @pytest.mark.parametrize("kind", [
        CrossoverType.ANY_POINT, CrossoverType.LINE,
        CrossoverType.INTERMEDIATE, CrossoverType.SIMULATED_BINARY,
    ])
    def test_override_needs_declared_parameters(self, kind):
        """Test an override cannot run with parameters the species never validated"""
        species = make_species()
        a = filled(species, 0.2)
        b = filled(species, 0.8)
        with pytest.raises(ContractViolationError) as exc_info:
            species.crossover(a, b, np.random.default_rng(0), kind)
        assert kind.value in str(exc_info.value)
        assert a == filled(species, 0.2)
        assert b == filled(species, 0.8)

    def test_override_shares_line_extension(self):
        """Test line and intermediate overrides share the declared line-extension"""
        species = make_species({"crossover-type": "intermediate", "line-extension": 0.0})
        a = filled(species, 0.2)
        b = filled(species, 0.8)
        species.crossover(a, b, np.random.default_rng(3), CrossoverType.LINE)
        for value in a.to_list() + b.to_list():
            assert 0.2 <= value <= 0.8
        species.crossover(a, b, np.random.default_rng(3), CrossoverType.ONE_POINT_NO_NOP)

    def test_species_mismatch(self):
        first = make_species()
        second = make_species()
        with pytest.raises(SpeciesMismatchError):
            first.crossover(filled(first, 0.0), filled(second, 1.0), np.random.default_rng(0))
        with pytest.raises(SpeciesMismatchError):
            first.mutate(filled(second, 0.0), np.random.default_rng(0))


# =============================================================================
# Property 4: mutation
# =============================================================================

class TestMutation:
    """Test mutation types and retry limits"""

    def test_zero_probability_changes_nothing(self):
        species = make_species({"mutation-prob": 0.0})
        genome = filled(species, 0.5)
        species.mutate(genome, np.random.default_rng(0))
        assert genome == filled(species, 0.5)

    def test_gaussian_retry_limit_falls_back_to_uniform(self):
        reset_notifications()
        species = make_species({
            "mutation-type": "gauss", "mutation-stdev": 1e6,
            "mutation-bounded": True, "out-of-bounds-retries": 1,
        })
        genome = filled(species, 0.5)
        species.mutate(genome, np.random.default_rng(1))
        assert genome.is_in_range()
        assert notification_counts()[RETRY_LIMIT_REACHED] >= 1

    def test_unlimited_retries_terminate(self):
        species = make_species({
            "mutation-type": "gauss", "mutation-stdev": 0.5,
            "mutation-bounded": True, "out-of-bounds-retries": 0,
        })
        genome = filled(species, 0.5)
        rng = np.random.default_rng(2)
        for _ in range(50):
            species.mutate(genome, rng)
            assert genome.is_in_range()

    def test_unbounded_gaussian_may_leave_bounds(self):
        species = make_species({
            "mutation-type": "gauss", "mutation-stdev": 100.0, "mutation-bounded": False,
        })
        genome = filled(species, 0.5)
        species.mutate(genome, np.random.default_rng(3))
        assert not genome.is_in_range()

    def test_polynomial_zero_width_keeps_value(self):
        species = make_species({
            "min-gene": 0.5, "max-gene": 0.5,
            "mutation-type": "polynomial", "mutation-distribution-index": 20,
            "mutation-bounded": True,
        })
        genome = filled(species, 0.5)
        species.mutate(genome, np.random.default_rng(0))
        assert genome == filled(species, 0.5)

    @pytest.mark.parametrize("alternative", [True, False])
    def test_polynomial_stays_in_bounds(self, alternative):
        species = make_species({
            "mutation-type": "polynomial", "mutation-distribution-index": 5,
            "alternative-polynomial-version": alternative, "mutation-bounded": True,
        })
        rng = np.random.default_rng(6)
        genome = species.create_individual(rng)
        for _ in range(100):
            species.mutate(genome, rng)
            assert genome.is_in_range()

    def test_bounded_random_walk(self):
        species = make_species({
            "element-kind": "integer", "min-gene": 0, "max-gene": 3,
            "mutation-type": "integer-random-walk", "random-walk-probability": 0.9,
            "mutation-bounded": True,
        })
        rng = np.random.default_rng(10)
        genome = filled(species, 3)
        for _ in range(200):
            species.mutate(genome, rng)
            assert genome.is_in_range()

    def test_unbounded_random_walk_respects_native_range(self):
        species = make_species({
            "element-kind": "short", "min-gene": 0, "max-gene": 0,
            "mutation-type": "integer-random-walk", "random-walk-probability": 0.5,
            "mutation-bounded": False,
        })
        rng = np.random.default_rng(12)
        for _ in range(100):
            genome = filled(species, 32767)
            species.mutate(genome, rng)
            assert all(value <= 32767 for value in genome.to_list())
            assert genome.genes.dtype == np.int16

    def test_random_walk_on_doubles_gives_integers(self):
        species = make_species({
            "min-gene": 0.0, "max-gene": 100.0,
            "mutation-type": "integer-random-walk", "random-walk-probability": 0.5,
            "mutation-bounded": True,
        })
        genome = filled(species, 50.0)
        species.mutate(genome, np.random.default_rng(0))
        assert all(float(value).is_integer() for value in genome.to_list())

    def test_integer_reset_on_doubles(self):
        species = make_species({"max-gene": 10.0, "mutation-type": "integer-reset"})
        genome = filled(species, 0.5)
        species.mutate(genome, np.random.default_rng(0))
        assert all(float(value).is_integer() for value in genome.to_list())

    def test_duplicate_retries_bound_the_draws(self):
        """Test a mutation that never changes the gene draws k + 1 candidates"""
        species = VectorSpecies.setup({
            "element-kind": "gene", "gene": StubbornGene, "genome-size": 5,
            "mutation-prob": 1.0, "duplicate-retries": 3, "crossover-type": "one",
        })
        genome = Genome(species)
        StubbornGene.resets = 0
        species.mutate(genome, np.random.default_rng(0))
        assert StubbornGene.resets == 5 * 4

    def test_duplicate_retries_return_first_change(self):
        species = make_species({"element-kind": "integer", "min-gene": 0, "max-gene": 1,
                                "duplicate-retries": 50})
        operator = MutationOperator(species)
        rng = np.random.default_rng(0)
        for _ in range(20):
            genome = filled(species, 0)
            draws = operator.mutate_gene(genome, 0, rng)
            assert 1 <= draws <= 51
            assert genome.value(0) == 1

    def test_gene_mutation_replaces_with_clone(self):
        species = VectorSpecies.setup({
            "element-kind": "gene", "gene": CounterGene, "genome-size": 4,
            "mutation-prob": 1.0, "duplicate-retries": 5, "crossover-type": "one",
        })
        genome = Genome(species, [CounterGene(-1) for _ in range(4)])
        originals = list(genome.genes)
        species.mutate(genome, np.random.default_rng(0))
        for original, gene in zip(originals, genome.genes):
            assert original.value == -1
            assert gene is not original


# =============================================================================
# Property 5: genome creation
# =============================================================================

class TestGenomeFactory:
    """Test initial lengths and values"""

    def test_geometric_with_zero_probability(self):
        species = make_species({
            "genome-size": "geometric", "min-initial-size": 4, "geometric-prob": 0.0,
        })
        rng = np.random.default_rng(0)
        assert {len(species.create_individual(rng)) for _ in range(50)} == {4}

    def test_geometric_mean_length(self):
        species = make_species({
            "genome-size": "geometric", "min-initial-size": 5, "geometric-prob": 0.9,
        })
        factory = GenomeFactory(species)
        rng = np.random.default_rng(21)
        lengths = [factory.initial_length(rng) for _ in range(4000)]
        assert min(lengths) >= 5
        assert abs(np.mean(lengths) - 14.0) < 1.5

    @given(st.integers(min_value=0, max_value=2**32 - 1))
    @settings(max_examples=100)
    def test_uniform_length_range(self, seed):
        species = UNIFORM_SPECIES
        genome = species.create_individual(np.random.default_rng(seed))
        assert 2 <= len(genome) <= 6
        assert genome.is_in_range()

    def test_gene_genomes_are_independent_clones(self):
        species = VectorSpecies.setup({
            "element-kind": "gene", "gene": CounterGene(7), "genome-size": 5,
            "mutation-prob": 0.0, "crossover-type": "one",
        })
        genome = species.create_individual(np.random.default_rng(0))
        ids = {id(gene) for gene in genome.genes}
        assert len(ids) == 5
        assert all(gene is not species.gene_prototype for gene in genome.genes)
        assert species.gene_prototype.value == 7

    def test_reset_keeps_length(self):
        species = make_species()
        genome = filled(species, 0.5)
        species.reset(genome, np.random.default_rng(0))
        assert len(genome) == 8
        assert genome.is_in_range()

    def test_reset_rejects_foreign_genome(self):
        with pytest.raises(SpeciesMismatchError):
            GenomeFactory(make_species()).reset(filled(make_species(), 0.0), np.random.default_rng(0))

    def test_same_seed_same_genome(self):
        species = make_species()
        first = species.create_individual(np.random.default_rng(99))
        second = species.create_individual(np.random.default_rng(99))
        assert first == second
