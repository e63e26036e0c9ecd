import argparse, logging, sys
import numpy as np
from .config import load_yaml, make_config, make_metadata
from .dictionary_learner import DictionaryLearner, EncodeStatus
from .exceptions import InvalidConfigurationError
from .jsonlog import log
from .monitoring import JsonLogSink

_OVERRIDES = ("atoms", "lambda1", "lambda2", "max_iterations", "objective_tolerance", "seed", "n_jobs")

def _load_cfg(args):
    base = load_yaml(args.config) if args.config else {}
    for name in _OVERRIDES:
        value = getattr(args, name)
        if value is not None:
            base[name] = value
    return make_config(base)

def _load_data(path, samples_as_rows=False):
    X = np.load(path).astype(float)
    if X.ndim != 2:
        raise InvalidConfigurationError(f"{path}: expected a 2D matrix, got shape {X.shape}")
    return X.T if samples_as_rows else X

def cmd_encode(args):
    cfg = _load_cfg(args)
    X = _load_data(args.data, args.samples_as_rows)
    log("encode_start", data=args.data, features=X.shape[0], samples=X.shape[1], atoms=cfg.atoms)
    learner = DictionaryLearner(X, cfg, progress=JsonLogSink())
    result = learner.encode()
    log("encode_done", **make_metadata(cfg, result))
    return 1 if result.status is EncodeStatus.FAILED else 0

def main(argv=None):
    ap = argparse.ArgumentParser("sparse-dictionary")
    ap.add_argument("--log-level", default="WARNING")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_en = sub.add_parser("encode", help="Learn a dictionary and codes for X.npy (features x samples)")
    ap_en.add_argument("--data", required=True)
    ap_en.add_argument("--config")
    ap_en.add_argument("--atoms", type=int)
    ap_en.add_argument("--lambda1", type=float)
    ap_en.add_argument("--lambda2", type=float)
    ap_en.add_argument("--max-iterations", dest="max_iterations", type=int)
    ap_en.add_argument("--tolerance", dest="objective_tolerance", type=float)
    ap_en.add_argument("--n-jobs", dest="n_jobs", type=int)
    ap_en.add_argument("--seed", type=int)
    ap_en.add_argument("--samples-as-rows", action="store_true")
    ap_en.set_defaults(func=cmd_encode)

    args = ap.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), stream=sys.stderr)
    try:
        return args.func(args)
    except InvalidConfigurationError as exc:
        log("error", message=str(exc))
        return 2

if __name__ == "__main__":
    raise SystemExit(main())
