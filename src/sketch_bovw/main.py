#Code by Christopher Kaelin, 2025
# This code is licensed under the MIT License - see the LICENSE file for details.
import argparse
import sys

from tqdm import tqdm

from sketch_bovw import config
from sketch_bovw.bovw import SketchRetriever

'''
Sketch-based 3D model retrieval, online part.
Run the offline builder first: it produces the dictionary (k-means centers), the TF-IDF database
and the view label file that this script loads.

Usage:
    sketch-bovw -d [database_file] -w [dictionary_file] -l [label_file] -m [model_folder] -f [sketch ...]
'''


def build_parser():
    parser = argparse.ArgumentParser(prog="sketch-bovw", description="Find the 3D model a sketch depicts.")
    parser.add_argument('-d', '--database', required=True, help="TF-IDF database of all rendered views (HDF5)")
    parser.add_argument('-w', '--dictionary', required=True, help="Dictionary file generated by K-Means")
    parser.add_argument('-l', '--labels', required=True, help="Label file mapping views to models")
    parser.add_argument('-m', '--models', default=config.MODEL_DIR, help="Folder containing the PLY models")
    parser.add_argument('-f', '--file', nargs='+', required=True, help="Input sketch image(s)")
    parser.add_argument('-p', '--points-per-row', type=int, default=config.POINT_PER_ROW,
                        help="Grid sample points per image axis")
    parser.add_argument('-j', '--jobs', type=int, default=config.N_JOBS, help="Worker threads (-1 = all cores)")
    parser.add_argument('-q', '--quiet', action='store_true', help="Only print results")
    return parser


def main(argv=None):
    """
    Loads the dictionary, database and labels once, then answers every sketch given with -f.
    Prints one line per sketch: file, matched view index, model id and model path.
    """
    args = build_parser().parse_args(argv)
    verbose = not args.quiet

    if verbose:
        print("--- Starting Sketch Retrieval ---")
    retriever = SketchRetriever.from_files(args.dictionary, args.database, args.labels, verbose=verbose,
                                           point_per_row=args.points_per_row, n_jobs=args.jobs,
                                           model_dir=args.models)
    # Per-match chatter would interleave with the progress bar
    retriever.verbose = False

    results = []
    for sketch_file in tqdm(args.file, desc="Retrieving", disable=not verbose or len(args.file) < 2):
        result = retriever.retrieve_file(sketch_file)
        results.append((sketch_file, result))

    for sketch_file, result in results:
        print(f"{sketch_file}\tview={result.view_index}\tmodel={result.model_id}\t{result.model_path}")

    if verbose:
        print("Retrieval completed successfully!")
    return results


def run():
    try:
        main()
    except Exception as e:
        print(f"An error occurred: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    # Ensures the script runs only when executed directly
    run()
