import argparse
import json
import logging
import shlex

from engine import SimulationEngine
import render


def parse_xy(text: str):
    x, y = text.split(",")
    return int(x), int(y)


def parse_placement(text: str):
    """``kind:x,y`` -> (kind, x, y)"""
    kind, rest = text.split(":")
    x, y = parse_xy(rest)
    return kind, x, y


def apply_placements(eng: SimulationEngine, zones, placements) -> None:
    for x, y in zones or []:
        ok = eng.place("residential", x, y)
        print(f"zone {x},{y}: {'ok' if ok else 'refused'}")
    for kind, x, y in placements or []:
        ok = eng.place(kind, x, y)
        print(f"{kind} {x},{y}: {'ok' if ok else 'refused'}")


def print_summary(eng: SimulationEngine) -> None:
    print(json.dumps(eng.summary(), indent=2, default=str))


def cmd_new(args):
    eng = SimulationEngine(width=args.width, height=args.height, seed=args.seed)
    apply_placements(eng, args.zone, args.place)
    eng.save_json(args.out)
    print(f"World created and saved to {args.out}")


def cmd_step(args):
    eng = SimulationEngine.load_json(args.world)
    eng.tick(args.ticks)
    if args.save:
        eng.save_json(args.save)
        print(f"Saved to {args.save}")
    print_summary(eng)


def cmd_summary(args):
    eng = SimulationEngine.load_json(args.world)
    print_summary(eng)


def cmd_place(args):
    eng = SimulationEngine.load_json(args.world)
    apply_placements(eng, args.zone, args.place)
    for x, y in args.demolish or []:
        ok = eng.demolish(x, y)
        print(f"demolish {x},{y}: {'ok' if ok else 'nothing there'}")
    eng.save_json(args.world)


def cmd_tariff(args):
    eng = SimulationEngine.load_json(args.world)
    for entry in args.rate or []:
        cat, pct = entry.split("=")
        if not eng.economy.set_rate(cat, float(pct)):
            print(f"Unknown cargo category {cat!r}")
    if args.global_modifier is not None:
        eng.economy.set_global_modifier(args.global_modifier)
    eng.save_json(args.world)
    print(json.dumps({"rates": eng.economy.rates,
                      "global_modifier": eng.economy.global_modifier,
                      "spawn_interval": eng.economy.spawn_interval()}, indent=2))


def cmd_export(args):
    eng = SimulationEngine.load_json(args.world)
    if args.ticks:
        eng.tick(args.ticks)
    render.render_topdown(eng, args.topdown, scale=args.scale)
    print(f"Saved {args.topdown}")


def cmd_repl(args):
    eng = SimulationEngine.load_json(args.world)
    print("Enter commands: step N | place KIND X Y | zone X Y | demolish X Y |"
          " rate CATEGORY PCT | summary | exit")
    while True:
        try:
            line = input("> ").strip()
        except EOFError:
            break
        if not line:
            continue
        parts = shlex.split(line)
        cmd = parts[0]
        try:
            if cmd == "step" and len(parts) >= 2:
                n = int(parts[1])
                eng.tick(n)
                print(f"Advanced {n} ticks; population {eng.population}, treasury {eng.treasury.balance:.0f}")
            elif cmd == "place" and len(parts) >= 4:
                print("ok" if eng.place(parts[1], int(parts[2]), int(parts[3])) else "refused")
            elif cmd == "zone" and len(parts) >= 3:
                print("ok" if eng.place("residential", int(parts[1]), int(parts[2])) else "refused")
            elif cmd == "demolish" and len(parts) >= 3:
                print("ok" if eng.demolish(int(parts[1]), int(parts[2])) else "nothing there")
            elif cmd == "rate" and len(parts) >= 3:
                print("ok" if eng.economy.set_rate(parts[1], float(parts[2])) else "unknown category")
            elif cmd == "summary":
                print_summary(eng)
            elif cmd in {"exit", "quit"}:
                break
            else:
                print("Unknown command")
                continue
        except ValueError:
            print("Bad number")
            continue
        eng.save_json(args.world)


def main(argv=None):
    ap = argparse.ArgumentParser(description="Headless CLI for the island kingdom simulation")
    ap.add_argument("-v", "--verbose", action="count", default=0,
                    help="-v for info, -vv for debug logging")
    sub = ap.add_subparsers()

    ap_new = sub.add_parser("new", help="Generate a new island")
    ap_new.add_argument("--width", type=int, default=96)
    ap_new.add_argument("--height", type=int, default=72)
    ap_new.add_argument("--seed", type=int, default=12345)
    ap_new.add_argument("--zone", type=parse_xy, action="append", help="Residential parcel at 'x,y' (can repeat)")
    ap_new.add_argument("--place", type=parse_placement, action="append",
                        help="e.g. 'road:10,12', 'port:30,40' or 'commercial:20,8' (can repeat)")
    ap_new.add_argument("--out", default="world.json")
    ap_new.set_defaults(func=cmd_new)

    ap_step = sub.add_parser("step", help="Advance ticks and print summary")
    ap_step.add_argument("world")
    ap_step.add_argument("--ticks", type=int, default=100)
    ap_step.add_argument("--save", default=None)
    ap_step.set_defaults(func=cmd_step)

    ap_sum = sub.add_parser("summary", help="Print summary")
    ap_sum.add_argument("world")
    ap_sum.set_defaults(func=cmd_summary)

    ap_place = sub.add_parser("place", help="Zone, build or demolish in a saved world")
    ap_place.add_argument("world")
    ap_place.add_argument("--zone", type=parse_xy, action="append")
    ap_place.add_argument("--place", type=parse_placement, action="append")
    ap_place.add_argument("--demolish", type=parse_xy, action="append")
    ap_place.set_defaults(func=cmd_place)

    ap_tar = sub.add_parser("tariff", help="Change tariff policy")
    ap_tar.add_argument("world")
    ap_tar.add_argument("--rate", action="append", help="e.g. 'luxury=40' (can repeat)")
    ap_tar.add_argument("--global", dest="global_modifier", type=float, default=None)
    ap_tar.set_defaults(func=cmd_tariff)

    ap_exp = sub.add_parser("export", help="Render world to a PNG preview")
    ap_exp.add_argument("--world", required=True, help="World JSON file")
    ap_exp.add_argument("--topdown", required=True, help="Topdown PNG path")
    ap_exp.add_argument("--scale", type=int, default=4, help="Pixels per tile")
    ap_exp.add_argument("--ticks", type=int, default=0, help="Simulate before rendering")
    ap_exp.set_defaults(func=cmd_export)

    ap_repl = sub.add_parser("repl", help="Interactive REPL")
    ap_repl.add_argument("world")
    ap_repl.set_defaults(func=cmd_repl)

    args = ap.parse_args(argv)
    level = logging.WARNING if args.verbose == 0 else logging.INFO if args.verbose == 1 else logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    if hasattr(args, "func"):
        args.func(args)
    else:
        ap.print_help()

if __name__ == "__main__":
    main()
