"""Runtime stub library embedded into every sandbox document.

The stubs approximate the timeline/animation primitives well enough to
render one representative frame. They are plain text; bump
STUB_LIBRARY_VERSION whenever their behavior changes so documents built
against different stub sets never compare equal.
"""

from __future__ import annotations

STUB_LIBRARY_VERSION = "2024.2"

BASE_CSS = r"""
* { margin:0; padding:0; box-sizing:border-box; }
body {
  font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
  background: #0f0f17;
  color: #e0e0e0;
  min-height: 100vh;
}
#root { width: 100%; height: 100vh; position: relative; overflow: hidden; }
.error-box {
  color: #f38ba8; font-size: 13px; padding: 16px;
  background: rgba(243,139,168,0.08);
  border: 1px solid rgba(243,139,168,0.2);
  border-radius: 8px; white-space: pre-wrap; font-family: monospace;
  margin: 24px; max-height: 80vh; overflow: auto;
}
"""

# Plain JS, evaluated before the component source. Defines the React aliases
# and the timeline primitives; the frame counter is driven from outside.
RUNTIME_STUBS_JS = r"""
var h = React.createElement, Fragment = React.Fragment;
var useState = React.useState, useEffect = React.useEffect, useRef = React.useRef,
  useMemo = React.useMemo, useCallback = React.useCallback, useContext = React.useContext,
  createContext = React.createContext, useReducer = React.useReducer,
  useLayoutEffect = React.useLayoutEffect, forwardRef = React.forwardRef, memo = React.memo,
  Children = React.Children, cloneElement = React.cloneElement, isValidElement = React.isValidElement;

var __frame = 30;
var useCurrentFrame = function() { return __frame; };
var useVideoConfig = function() {
  return { fps: 30, durationInFrames: 150, width: 1920, height: 1080 };
};
var interpolate = function(input, inputRange, outputRange, options) {
  var clamped = options && (options.extrapolateRight === 'clamp' || options.extrapolateLeft === 'clamp');
  if (inputRange.length === 2) {
    var t = (input - inputRange[0]) / (inputRange[1] - inputRange[0]);
    if (clamped) t = Math.max(0, Math.min(1, t));
    return outputRange[0] + t * (outputRange[1] - outputRange[0]);
  }
  for (var i = 0; i < inputRange.length - 1; i++) {
    if (input <= inputRange[i + 1] || i === inputRange.length - 2) {
      var t2 = (input - inputRange[i]) / (inputRange[i + 1] - inputRange[i]);
      if (clamped) t2 = Math.max(0, Math.min(1, t2));
      return outputRange[i] + t2 * (outputRange[i + 1] - outputRange[i]);
    }
  }
  return outputRange[outputRange.length - 1];
};
var __identity = function(t) { return t; };
var Easing = {
  bezier: function() { return __identity; },
  in: function(e) { return e || __identity; },
  out: function(e) { return e || __identity; },
  inOut: function(e) { return e || __identity; },
  linear: __identity, ease: __identity, cubic: __identity, quad: __identity,
};
var spring = function() { return 1; };
var Sequence = function(p) {
  return h('div', { style: { position: 'relative', width: '100%', height: '100%' } }, p.children);
};
var AbsoluteFill = function(p) {
  var s = Object.assign({ position: 'absolute', top: 0, left: 0, right: 0, bottom: 0,
    display: 'flex', flexDirection: 'column' }, p.style || {});
  return h('div', { style: s, className: p.className }, p.children);
};
var Img = function(p) {
  var fallback = 'data:image/svg+xml,' + encodeURIComponent('<svg xmlns="http://www.w3.org/2000/svg" width="400" height="300"><rect fill="#333" width="400" height="300"/><text x="200" y="150" fill="#888" text-anchor="middle" dy=".3em" font-family="sans-serif" font-size="16">Image</text></svg>');
  return h('img', { src: p.src || fallback, style: Object.assign({ maxWidth: '100%' }, p.style || {}), alt: '' });
};
var OffthreadVideo = function(p) {
  return h('div', { style: Object.assign({ background: '#222', display: 'flex', alignItems: 'center',
    justifyContent: 'center', color: '#888', fontSize: 14, minHeight: 120 }, p.style || {}) },
    'Video: ' + (p.src || 'no source'));
};
var Audio = function() { return null; };
var Video = OffthreadVideo;
var staticFile = function(p) { return p; };
var continueRender = function() {};
var delayRender = function() { return 0; };
var useNoise2D = function() { return function() { return 0.5; }; };
var useNoise3D = function() { return function() { return 0.5; }; };
var TransitionSeries = function(p) { return h('div', null, p.children); };
TransitionSeries.Sequence = Sequence;
TransitionSeries.Transition = function() { return null; };
var linearTiming = function() { return {}; };
var springTiming = function() { return {}; };
var fade = function() { return {}; };
var slide = function() { return {}; };
var wipe = function() { return {}; };
"""

# TSX, transpiled together with the component so the helpers share its scope.
SHARED_HELPERS_TSX = r"""
type VideoTheme = any;
type SceneContent = any;
type SceneType = string;
type SceneLayout = string;
type SceneStyleOverrides = any;
type CSSProperties = any;

const __clamp = { extrapolateRight: 'clamp', extrapolateLeft: 'clamp' };
const fadeInBlur = (frame: number, delay: number, dur = 22) => {
  const o = interpolate(frame, [delay, delay + dur], [0, 1], __clamp);
  const blur = interpolate(frame, [delay, delay + dur], [16, 0], __clamp);
  const y = interpolate(frame, [delay, delay + dur], [24, 0], __clamp);
  return { opacity: o, transform: `translateY(${y}px)`, filter: `blur(${blur}px)` };
};
const fadeInUp = (frame: number, delay: number, distance = 40, dur = 20) => {
  const o = interpolate(frame, [delay, delay + dur], [0, 1], __clamp);
  const y = interpolate(frame, [delay, delay + dur], [distance, 0], __clamp);
  return { opacity: o, transform: `translateY(${y}px)` };
};
const scaleIn = (frame: number, delay: number, dur = 18) => {
  const o = interpolate(frame, [delay, delay + dur], [0, 1], __clamp);
  const s = interpolate(frame, [delay, delay + dur], [0.7, 1], __clamp);
  return { opacity: o, transform: `scale(${s})` };
};
const slideFromLeft = (frame: number, delay: number, distance = 60, dur = 20) => {
  const o = interpolate(frame, [delay, delay + dur], [0, 1], __clamp);
  const x = interpolate(frame, [delay, delay + dur], [-distance, 0], __clamp);
  return { opacity: o, transform: `translateX(${x}px)` };
};
const slideFromRight = (frame: number, delay: number, distance = 60, dur = 20) => {
  const o = interpolate(frame, [delay, delay + dur], [0, 1], __clamp);
  const x = interpolate(frame, [delay, delay + dur], [distance, 0], __clamp);
  return { opacity: o, transform: `translateX(${x}px)` };
};
const glowPulse = (frame: number, delay: number, color: string) => {
  const o = interpolate(frame, [delay, delay + 14], [0, 1], __clamp);
  return { opacity: o, boxShadow: `0 0 30px ${color}40` };
};
const revealLine = (frame: number, delay: number, dur = 16) => {
  const w = interpolate(frame, [delay, delay + dur], [0, 100], __clamp);
  return { width: `${w}%` };
};
const animatedNumber = (frame: number, delay: number, targetStr: string, dur = 24) => {
  const m = String(targetStr).match(/([\d,.]+)/);
  if (!m) return targetStr;
  const n = parseFloat(m[1].replace(/,/g, ''));
  if (isNaN(n)) return targetStr;
  const current = interpolate(frame, [delay, delay + dur], [0, n], __clamp);
  const formatted = m[1].includes('.') ? current.toFixed(1) : Math.round(current).toLocaleString();
  return String(targetStr).replace(m[1], formatted);
};
const typewriterReveal = (frame: number, delay: number, totalChars: number, dur = 30) => {
  const progress = interpolate(frame, [delay, delay + dur], [0, totalChars], __clamp);
  return { visibleChars: Math.floor(progress), showCursor: frame >= delay };
};
const counterSpinUp = (frame: number, delay: number, target: number, dur = 28) => {
  if (frame < delay) return 0;
  if (frame >= delay + dur) return target;
  return interpolate(frame, [delay, delay + dur], [0, target], __clamp);
};
const horizontalWipe = (frame: number, delay: number, dur = 20, direction = 'left') => {
  const p = interpolate(frame, [delay, delay + dur], [0, 100], __clamp);
  return { clipPath: direction === 'left' ? `inset(0 ${100 - p}% 0 0)` : `inset(0 0 0 ${100 - p}%)` };
};
const parallaxLayer = (frame: number, speed = 0.3, direction = 'up') => {
  const offset = frame * speed;
  const transforms: Record<string, string> = {
    up: `translateY(-${offset}px)`, down: `translateY(${offset}px)`,
    left: `translateX(-${offset}px)`, right: `translateX(${offset}px)`,
  };
  return { transform: transforms[direction] || '' };
};
const fadeOutDown = (frame: number, startFrame: number, dur = 18, distance = 40) => {
  const o = interpolate(frame, [startFrame, startFrame + dur], [1, 0], __clamp);
  const y = interpolate(frame, [startFrame, startFrame + dur], [0, distance], __clamp);
  return { opacity: o, transform: `translateY(${y}px)` };
};
const animatedMeshBg = (frame: number, theme: any) => {
  const x1 = interpolate(frame, [0, 120], [20, 35], { extrapolateRight: 'clamp' });
  const y1 = interpolate(frame, [0, 90], [30, 45], { extrapolateRight: 'clamp' });
  const x2 = interpolate(frame, [0, 100], [80, 65], { extrapolateRight: 'clamp' });
  const y2 = interpolate(frame, [0, 110], [70, 55], { extrapolateRight: 'clamp' });
  const p = theme?.colors?.primary || '#61dafb';
  const a = theme?.colors?.accent || '#f97316';
  const s = theme?.colors?.secondary || '#a78bfa';
  return {
    position: 'absolute' as const, inset: 0,
    background: [
      `radial-gradient(ellipse 80% 50% at ${x1}% ${y1}%, ${p}28 0%, transparent 60%)`,
      `radial-gradient(ellipse 60% 70% at ${x2}% ${y2}%, ${a}22 0%, transparent 55%)`,
      `radial-gradient(ellipse 90% 40% at 50% 0%, ${s}18 0%, transparent 50%)`,
    ].join(', '),
  };
};
const staggerEntrance = (frame: number, index: number, baseDelay: number, spacingVal = 10) => {
  const delay = baseDelay + index * spacingVal;
  const variant = index % 4;
  if (variant === 0) return fadeInUp(frame, delay, 35, 22);
  if (variant === 1) return slideFromLeft(frame, delay, 45, 22);
  if (variant === 2) return scaleIn(frame, delay, 22);
  return slideFromRight(frame, delay, 45, 22);
};
const floatY = (frame: number, amplitude = 6, speed = 0.05, phase = 0) => {
  const y = Math.sin((frame + phase) * speed) * amplitude;
  return { transform: `translateY(${y}px)` };
};
const scanLineStyle = (frame: number, delay: number, color: string, dur = 40) => {
  const pos = interpolate(frame, [delay, delay + dur], [-5, 105], __clamp);
  const opacity = interpolate(frame, [delay, delay + 8, delay + dur - 8, delay + dur], [0, 0.7, 0.7, 0], __clamp);
  return {
    position: 'absolute' as const, left: 0, right: 0, top: `${pos}%`, height: 2,
    background: `linear-gradient(90deg, transparent 0%, ${color} 30%, ${color} 70%, transparent 100%)`,
    boxShadow: `0 0 20px ${color}60, 0 0 60px ${color}30`, opacity, pointerEvents: 'none' as const, zIndex: 10,
  };
};
const breathe = (frame: number, speed = 0.04, amount = 0.008, phase = 0) => {
  const s = 1 + Math.sin((frame + phase) * speed) * amount;
  return { transform: `scale(${s})` };
};
const glowBorderStyle = (frame: number, color: string, delay = 0) => {
  const angle = interpolate(frame, [delay, delay + 120], [0, 360], { extrapolateRight: 'clamp' });
  const opacity = interpolate(frame, [delay, delay + 20], [0, 1], __clamp);
  return {
    position: 'absolute' as const, inset: -1, borderRadius: 'inherit',
    background: `conic-gradient(from ${angle}deg, transparent 0%, ${color}40 25%, transparent 50%, ${color}25 75%, transparent 100%)`,
    opacity, pointerEvents: 'none' as const, zIndex: -1,
  };
};
const themedHeadlineStyle = (theme: any) => ({
  background: `linear-gradient(135deg, ${theme?.colors?.text || '#fff'}, ${theme?.colors?.primary || '#61dafb'})`,
  backgroundClip: 'text', WebkitBackgroundClip: 'text', WebkitTextFillColor: 'transparent', color: 'transparent',
});
const themedButtonStyle = (theme: any) => ({
  background: theme?.colors?.primary || '#61dafb', color: '#fff', border: 'none',
  borderRadius: 12, padding: '12px 28px', fontWeight: 700, fontSize: 16, cursor: 'pointer',
});
const meshGradientStyle = (theme: any) => ({
  position: 'absolute' as const, inset: 0,
  background: `radial-gradient(ellipse at 20% 30%, ${theme?.colors?.primary || '#61dafb'}12 0%, transparent 60%)`,
});
const gridPatternStyle = (theme: any) => ({
  position: 'absolute' as const, inset: 0, opacity: 0.03,
  backgroundImage: 'linear-gradient(rgba(255,255,255,0.05) 1px, transparent 1px), linear-gradient(90deg, rgba(255,255,255,0.05) 1px, transparent 1px)',
  backgroundSize: '60px 60px',
});
const noiseOverlayStyle = () => ({ position: 'absolute' as const, inset: 0, opacity: 0.03 });
const glowOrbStyle = (frame: number, color: string, size: number, x: string, y: string, delay = 0) => {
  const s = interpolate(frame, [delay, delay + 40], [0.6, 1], __clamp);
  return {
    position: 'absolute' as const, width: size, height: size, borderRadius: '50%',
    background: `radial-gradient(circle, ${color}20 0%, transparent 70%)`,
    left: x, top: y, transform: `scale(${s})`, pointerEvents: 'none' as const,
  };
};
const glassSurface = (theme: any) => ({
  background: (theme?.colors?.surface || '#1a1a2e') + 'cc',
  backdropFilter: 'blur(20px)', border: '1px solid rgba(255,255,255,0.06)',
});
const glassCard = (theme: any, radius = 20) => ({ ...glassSurface(theme), borderRadius: radius });
const depthShadow = () => '0 2px 4px rgba(0,0,0,0.3), 0 8px 32px rgba(0,0,0,0.2)';
const gradientText = (from: string, to: string) => ({
  backgroundImage: `linear-gradient(135deg, ${from}, ${to})`,
  backgroundClip: 'text', WebkitBackgroundClip: 'text',
  WebkitTextFillColor: 'transparent', color: 'transparent',
});
const accentColor = (theme: any, index = 0) => {
  const palette = [theme?.colors?.primary || '#61dafb', theme?.colors?.accent || '#f97316', theme?.colors?.secondary || '#a78bfa'];
  return palette[index % palette.length];
};
const shimmerStyle = () => ({ position: 'absolute' as const, inset: 0, pointerEvents: 'none' as const });
const isThemeDark = (theme: any) => {
  const bg = theme?.colors?.background || '#000';
  if (bg.length < 7) return true;
  const r = parseInt(bg.slice(1, 3), 16), g = parseInt(bg.slice(3, 5), 16), b = parseInt(bg.slice(5, 7), 16);
  return (r * 299 + g * 587 + b * 114) / 1000 < 128;
};
const mergeThemeWithOverrides = (theme: any, overrides?: any) => {
  if (!overrides) return theme;
  return { ...theme, colors: { ...theme.colors, ...(overrides.accentColor && { accent: overrides.accentColor, primary: overrides.accentColor }) } };
};

const easings = {
  smooth: (t: number) => t, snappy: (t: number) => t, spring: (t: number) => t,
  elastic: (t: number) => t, decel: (t: number) => t, bounce: (t: number) => t,
};
const spacing = {
  scenePadding: 80, scenePaddingX: 100,
  sectionGap: 56, cardGap: 24, cardPadding: 32,
  borderRadius: { sm: 10, md: 16, lg: 24, xl: 32 },
};
const typography = {
  heroTitle: { fontSize: 72, fontWeight: 800, lineHeight: 1.04, letterSpacing: '-0.035em' },
  sectionTitle: { fontSize: 46, fontWeight: 800, lineHeight: 1.1, letterSpacing: '-0.025em' },
  cardTitle: { fontSize: 20, fontWeight: 700, lineHeight: 1.3 },
  body: { fontSize: 16, fontWeight: 500, lineHeight: 1.6 },
  bodyLg: { fontSize: 21, fontWeight: 500, lineHeight: 1.55 },
  caption: { fontSize: 13, fontWeight: 600, letterSpacing: '0.06em', textTransform: 'uppercase' },
  stat: { fontSize: 60, fontWeight: 800, lineHeight: 1, letterSpacing: '-0.03em' },
  label: { fontSize: 11, fontWeight: 600, letterSpacing: '0.08em', textTransform: 'uppercase' },
};
const getTypography = (theme?: any) => {
  const d = theme?.fonts?.heading ? `"${theme.fonts.heading}", system-ui, sans-serif` : undefined;
  const b = theme?.fonts?.body ? `"${theme.fonts.body}", system-ui, sans-serif` : undefined;
  return {
    heroTitle: { ...typography.heroTitle, fontFamily: d },
    sectionTitle: { ...typography.sectionTitle, fontFamily: d },
    cardTitle: { ...typography.cardTitle, fontFamily: d },
    body: { ...typography.body, fontFamily: b },
    bodyLg: { ...typography.bodyLg, fontFamily: b },
    caption: { ...typography.caption, fontFamily: b },
    stat: { ...typography.stat, fontFamily: d },
    label: { ...typography.label, fontFamily: b },
  };
};
var typo = typography;

const MockupPlaceholder = (p: any) =>
  React.createElement('div', {
    style: { background: '#1a1a2e', borderRadius: 12, border: '1px solid rgba(255,255,255,0.1)',
      padding: 24, display: 'flex', alignItems: 'center', justifyContent: 'center',
      color: '#888', minHeight: 200, fontSize: 14 },
  }, p?.children || 'Mockup');
"""

# Fills in colors and fonts a theme prop may be missing. Plain JS, global.
SAFE_THEME_JS = r"""
function __safeTheme(t) {
  if (!t || typeof t !== 'object') t = {};
  var colors = Object.assign({
    background: '#0f0f17', surface: '#1a1a2e', primary: '#61dafb',
    secondary: '#a78bfa', text: '#f0f0f5', textMuted: '#888',
    accent: '#f97316', glow: '#6366f1',
  }, t.colors || {});
  var fonts = Object.assign({ heading: 'system-ui, sans-serif', body: 'system-ui, sans-serif' }, t.fonts || {});
  return Object.assign({}, t, {
    colors: colors,
    fonts: fonts,
    borderRadius: t.borderRadius != null ? t.borderRadius : 20,
    personality: t.personality != null ? t.personality : {},
  });
}
"""
