# picmark/cli.py
"""命令行入口：批量加水印、读取图片尺寸、查看/清除保存的配置。"""
import argparse
import json
import logging
import os
import sys

from picmark.batch_worker import batch_export, make_tasks
from picmark.config import POSITIONS, merge_config
from picmark.config_store import ConfigStore
from picmark.errors import DecodeError, WatermarkError
from picmark.exporter import DEFAULT_QUALITY, OUTPUT_FORMATS
from picmark.image_io import is_image_file, mime_type_for, probe_dimensions

logger = logging.getLogger(__name__)

# 命令行参数名 -> 配置字段
_CONFIG_ARGS = {
    'text': 'text',
    'position': 'position',
    'size': 'size',
    'color': 'color',
    'opacity': 'opacity',
    'spacing': 'spacing',
    'rotation': 'rotation',
    'padding': 'padding',
    'font': 'font_path',
}


def collect_images(paths):
    images = []
    for p in paths:
        if os.path.isdir(p):
            for root, _, files in os.walk(p):
                for fn in sorted(files):
                    fp = os.path.join(root, fn)
                    if is_image_file(fp):
                        images.append(fp)
        elif os.path.isfile(p) and is_image_file(p):
            images.append(p)
        else:
            logger.warning("跳过不支持的路径: %s", p)
    return images


def config_from_args(args, base):
    """命令行里显式给出的字段覆盖已保存的配置；给了 --text 即视为启用"""
    overrides = {}
    for arg, field in _CONFIG_ARGS.items():
        value = getattr(args, arg, None)
        if value is not None:
            overrides[field] = value
    if args.fullscreen is not None:
        overrides['fullscreen'] = args.fullscreen
    if args.text:
        overrides['enabled'] = True
    if args.disable:
        overrides['enabled'] = False
    return merge_config(overrides, defaults=base).validate()


def cmd_apply(args, store):
    config = config_from_args(args, store.load_watermark_config())
    if args.save:
        store.save_watermark_config(config)

    images = collect_images(args.paths)
    if not images:
        print("没有找到可处理的图片", file=sys.stderr)
        return 1
    os.makedirs(args.output, exist_ok=True)

    tasks = make_tasks(
        images,
        args.output,
        output_format=args.format,
        quality=args.quality,
        prefix=args.prefix,
        suffix=args.suffix,
    )

    def progress(done, total, success, message):
        status = "OK" if success else "FAIL"
        print(f"[{done}/{total}] {status} {message}")

    results = batch_export(tasks, config, max_workers=args.workers, progress_callback=progress)
    failed = sum(1 for ok, _ in results if not ok)
    return 1 if failed else 0


def cmd_probe(args, store):
    status = 0
    for path in args.paths:
        try:
            with open(path, 'rb') as f:
                width, height = probe_dimensions(f.read())
        except (OSError, DecodeError) as e:
            print(f"{path}\t错误: {e}", file=sys.stderr)
            status = 1
            continue
        print(f"{os.path.basename(path)}\t{width} x {height}\t{mime_type_for(path)}")
    return status


def cmd_config(args, store):
    if args.reset:
        return 0 if store.clear_watermark_config() else 1
    print(json.dumps(store.load_watermark_config().to_dict(), indent=2, ensure_ascii=False))
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog='picmark', description="给图片添加文字水印")
    parser.add_argument('-v', '--verbose', action='store_true', help="输出调试日志")
    parser.add_argument('--settings', help="设置文件路径（默认 ~/.picmark/settings.json）")
    sub = parser.add_subparsers(dest='command', required=True)

    apply_p = sub.add_parser('apply', help="批量添加水印")
    apply_p.add_argument('paths', nargs='+', help="图片文件或文件夹")
    apply_p.add_argument('-o', '--output', required=True, help="输出文件夹")
    apply_p.add_argument('--text', help="水印文字")
    apply_p.add_argument('--position', choices=sorted(POSITIONS))
    apply_p.add_argument('--size', type=float, help="字号（像素）")
    apply_p.add_argument('--color', help="颜色，如 #FFFFFF 或 white")
    apply_p.add_argument('--opacity', type=float, help="透明度 0..1")
    apply_p.add_argument('--fullscreen', dest='fullscreen', action='store_true', default=None,
                         help="全屏平铺")
    apply_p.add_argument('--no-fullscreen', dest='fullscreen', action='store_false')
    apply_p.add_argument('--spacing', type=float, help="平铺间距（像素）")
    apply_p.add_argument('--rotation', type=float, help="顺时针旋转角度")
    apply_p.add_argument('--padding', type=float, help="距边缘的内边距（像素）")
    apply_p.add_argument('--font', help="字体文件 (.ttf/.otf)")
    apply_p.add_argument('--disable', action='store_true', help="不加水印，只转换格式")
    apply_p.add_argument('--format', default='jpeg', choices=sorted(OUTPUT_FORMATS))
    apply_p.add_argument('--quality', type=float, default=DEFAULT_QUALITY, help="编码质量 (0, 1]")
    apply_p.add_argument('--prefix', default='')
    apply_p.add_argument('--suffix', default='_wm')
    apply_p.add_argument('--workers', type=int, default=2)
    apply_p.add_argument('--save', action='store_true', help="把本次配置保存为默认")
    apply_p.set_defaults(func=cmd_apply)

    probe_p = sub.add_parser('probe', help="读取图片尺寸")
    probe_p.add_argument('paths', nargs='+')
    probe_p.set_defaults(func=cmd_probe)

    config_p = sub.add_parser('config', help="查看或清除保存的水印配置")
    config_p.add_argument('--reset', action='store_true')
    config_p.set_defaults(func=cmd_config)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    store = ConfigStore(args.settings)
    try:
        return args.func(args, store)
    except WatermarkError as e:
        print(f"错误: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
