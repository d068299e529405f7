# picmark/batch_worker.py
import concurrent.futures
import logging
import pathlib

from picmark.errors import WatermarkError
from picmark.exporter import DEFAULT_QUALITY, compose_watermark_on_image, output_extension

logger = logging.getLogger(__name__)


def ensure_output_path(src_path, out_dir, prefix='', suffix='', ext=None):
    src = pathlib.Path(src_path)
    name = src.stem
    ext = ext or src.suffix
    dst = pathlib.Path(out_dir) / f"{prefix}{name}{suffix}{ext}"
    # 如果文件存在，追加序号
    i = 1
    while dst.exists():
        dst = pathlib.Path(out_dir) / f"{prefix}{name}{suffix}_{i}{ext}"
        i += 1
    return str(dst)


def make_tasks(src_paths, out_dir, output_format='jpeg', quality=DEFAULT_QUALITY, prefix='', suffix=''):
    """为每个源文件生成导出任务，目标文件名不会互相覆盖"""
    tasks = []
    reserved = set()
    ext = output_extension(output_format)
    for src in src_paths:
        dst = ensure_output_path(src, out_dir, prefix, suffix, ext)
        # 同一批次里重名的也要避开
        i = 1
        while dst in reserved:
            stem = pathlib.Path(src).stem
            dst = str(pathlib.Path(out_dir) / f"{prefix}{stem}{suffix}_{i}{ext}")
            i += 1
        reserved.add(dst)
        tasks.append({
            'src_path': str(src),
            'dst_path': dst,
            'output_format': output_format,
            'quality': quality,
        })
    return tasks


def batch_export(tasks, config, max_workers=2, progress_callback=None):
    """
    tasks: list of dicts, 每个 dict 包含 src_path, dst_path, output_format, quality
    config: 所有任务共用的 WatermarkConfig
    progress_callback(done, total, success, message)
    """
    results = []
    total = len(tasks)

    def worker(task):
        try:
            compose_watermark_on_image(
                task['src_path'],
                task['dst_path'],
                config,
                output_format=task.get('output_format', 'jpeg'),
                quality=task.get('quality', DEFAULT_QUALITY),
            )
            return True, task['dst_path']
        except (WatermarkError, OSError) as e:
            logger.warning("导出失败 %s: %s", task['src_path'], e)
            return False, f"{task['src_path']}: {e}"

    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as ex:
        futures = []
        for t in tasks:
            futures.append(ex.submit(worker, t))
        for i, f in enumerate(concurrent.futures.as_completed(futures), start=1):
            success, msg = f.result()
            if progress_callback:
                progress_callback(i, total, success, msg)
            results.append((success, msg))
    return results
