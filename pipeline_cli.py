#!/usr/bin/env python3

"""
Command-line interface for the gene family curation pipeline.

Subcommands:
  curate        curate one gene family and build its profile HMM
  curate-batch  curate every family listed in a YAML/JSON file
  quantify      count gene family hits in one or more read samples
"""

import argparse
import sys
import logging

from gene_family_curation.core.config import PipelineConfig, load_config, load_family_specs
from gene_family_curation.core.data_structures import ResultsTable
from gene_family_curation.core.exceptions import PipelineError
from gene_family_curation.core.generators import write_results_table


def setup_logging(log_level: str = "INFO") -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logging.captureWarnings(True)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Gene family curation and quantification pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Curate a gene family, pruning known false positives
  python pipeline_cli.py curate tdcd propk_ecoli_control.faa "bcd_1|bcd_2" --output-dir tdcd

  # Curate several families
  python pipeline_cli.py curate-batch families.yaml --output-dir families

  # Count matches in samples
  python pipeline_cli.py quantify S1_cat.fna.gz S2_cat.fna.gz --db tdcd_FINAL_SEQS.dmnd --threads 8 --output tdcd_k1_total.tsv
        """
    )
    parser.add_argument(
        '--config',
        help='Configuration file (JSON or YAML)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    curate = subparsers.add_parser('curate', help='Curate one gene family')
    curate.add_argument('gene', help='Gene name token (e.g. tdcd)')
    curate.add_argument('control', help='Control enzyme FASTA (e.g. from MetaCyc)')
    curate.add_argument('negative_pattern', nargs='?', default=None,
                        help='Optional regex excluding false-positive descriptions')
    _add_curation_options(curate)

    batch = subparsers.add_parser('curate-batch', help='Curate gene families listed in a file')
    batch.add_argument('families', help='YAML or JSON file with a "families" list')
    _add_curation_options(batch)

    quantify = subparsers.add_parser('quantify', help='Count gene family matches in samples')
    quantify.add_argument('samples', nargs='+', help='Read FASTA files (optionally gzipped)')
    quantify.add_argument('--db', required=True, help='DIAMOND database of the gene family')
    quantify.add_argument('--threads', type=int, help='Search threads (default: from config)')
    quantify.add_argument('--output', required=True, help='Results table (TSV)')
    quantify.add_argument('--append', action='store_true',
                          help='Append rows to an existing results table')

    return parser


def _add_curation_options(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument('--output-dir', required=True, help='Output directory')
    subparser.add_argument('--min-length', type=int,
                           help='Minimum protein length (default: 100)')
    subparser.add_argument('--gap-threshold', type=float,
                           help='Maximum fraction of gaps per aligned sequence (default: 0.3)')
    subparser.add_argument('--pangenomes', help='Glob of pangenome protein FASTA files')
    subparser.add_argument('--proteomes', help='Glob of reference proteome FASTA files')
    subparser.add_argument('--threads', type=int, help='Aligner threads (default: -1, auto)')
    subparser.add_argument('--no-search-db', action='store_true',
                           help='Skip building the DIAMOND database from clean sequences')


def apply_overrides(config: PipelineConfig, args) -> PipelineConfig:
    """Override config with command line arguments."""
    if getattr(args, 'min_length', None) is not None:
        config.min_length = args.min_length
    if getattr(args, 'gap_threshold', None) is not None:
        config.gap_threshold = args.gap_threshold
    if getattr(args, 'pangenomes', None):
        config.pangenome_glob = args.pangenomes
    if getattr(args, 'proteomes', None):
        config.proteome_glob = args.proteomes
    if getattr(args, 'threads', None) is not None:
        config.threads = args.threads
    if getattr(args, 'no_search_db', False):
        config.build_search_database = False

    # Re-validate after CLI overrides.
    config.validate()
    return config


def run_curate(config: PipelineConfig, args) -> int:
    from gene_family_curation import FamilyCurationPipeline

    pipeline = FamilyCurationPipeline(config)
    result = pipeline.run(args.gene, args.control, args.output_dir, args.negative_pattern)
    for name, count in result.diagnostics.items():
        logging.info(f"{name}: {count}")
    return 0


def run_curate_batch(config: PipelineConfig, args) -> int:
    from gene_family_curation import FamilyCurationPipeline

    families = load_family_specs(args.families)
    report = FamilyCurationPipeline(config).run_batch(families, args.output_dir)
    for gene, error in report.failures.items():
        logging.error(f"{gene}: {error}")
    return 0 if report.success else 1


def run_quantify(config: PipelineConfig, args) -> int:
    from gene_family_curation import QuantificationPipeline

    table = ResultsTable()
    report = QuantificationPipeline(config).quantify_samples(args.samples, args.db, args.threads, table)
    if len(table):
        write_results_table(table, args.output, append=args.append)
    return 0 if report.success else 1


def main(argv=None):
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    commands = {
        'curate': run_curate,
        'curate-batch': run_curate_batch,
        'quantify': run_quantify,
    }

    try:
        config = apply_overrides(load_config(config_path=args.config, use_env=True), args)
        return commands[args.command](config, args)

    except PipelineError as e:
        logger.error(f"Pipeline error: {e}")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        logger.debug("Full traceback:", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
